import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from jose import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.dependencies import get_current_user
from aqva.models import User, get_db
from aqva.services.roles import resolve_role

router = APIRouter()
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    full_name: str | None = Field(default=None, alias="fullName", max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    email: EmailStr
    password: str
    confirm_password: str = Field(alias="confirmPassword")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v

    @model_validator(mode="after")
    def validate_registration(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"email": "customer@example.com", "password": "securepassword"}]},
        populate_by_name=True,
    )


class TokenResponse(CamelModel):
    access_token: str = Field(alias="accessToken")
    token_type: str = "bearer"
    expires_in: int = Field(alias="expiresIn")


class MeResponse(CamelModel):
    id: int
    email: str
    full_name: str | None = Field(default=None, alias="fullName")
    phone: str | None = None
    created_at: str = Field(alias="createdAt")


class RoleResponse(CamelModel):
    role: str
    diagnostic: str | None = None


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user_id: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _to_me_response(user: User) -> MeResponse:
    created = user.created_at.isoformat() if user.created_at else ""
    return MeResponse(
        id=user.id,
        email=user.email,
        fullName=user.full_name,
        phone=user.phone,
        createdAt=created,
    )


@router.post(
    "/register",
    response_model=MeResponse,
    summary="Register a new customer",
)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
):
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=email,
        full_name=body.full_name,
        phone=body.phone,
        hashed_password=get_password_hash(body.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )
    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return _to_me_response(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and get an access token",
)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email/password and return a JWT access token."""
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return TokenResponse(
        accessToken=create_access_token(user.id),
        expiresIn=settings.JWT_EXPIRE_MINUTES * 60,
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current authenticated user profile",
)
def me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return _to_me_response(current_user)


@router.get(
    "/role",
    response_model=RoleResponse,
    summary="Resolve which app the current user should see",
)
def role(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Returns `admin`, `rider` or `client`. A slow admin check counts as not admin.
    When detection fails the user falls back to `client` and `diagnostic` says why.
    """
    resolution = resolve_role(db, current_user)
    return RoleResponse(role=resolution.role, diagnostic=resolution.diagnostic)
