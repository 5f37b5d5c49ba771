from fastapi import status
from jose import jwt

from aqva.config import settings
from aqva.models.user import User


def _register_payload(email: str = "newuser@example.com", full_name: str = "New Customer") -> dict:
    return {
        "fullName": full_name,
        "email": email,
        "phone": "+27821112222",
        "password": "password123",
        "confirmPassword": "password123",
    }


def test_register_success(client, db):
    response = client.post("/api/auth/register", json=_register_payload())

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["email"] == "newuser@example.com"
    assert data["fullName"] == "New Customer"

    user = db.query(User).filter(User.email == "newuser@example.com").first()
    assert user is not None
    assert user.hashed_password != "password123"


def test_register_duplicate_email(client, test_user):
    response = client.post("/api/auth/register", json=_register_payload(email=test_user.email))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "already registered" in response.json()["detail"].lower()


def test_register_password_too_short(client):
    payload = _register_payload()
    payload["password"] = "short"
    payload["confirmPassword"] = "short"
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_register_password_confirmation_mismatch(client):
    payload = _register_payload()
    payload["confirmPassword"] = "different123"
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_login_returns_access_token(client, test_user):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "testpassword123"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["expiresIn"] == settings.JWT_EXPIRE_MINUTES * 60
    payload = jwt.decode(data["accessToken"], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert payload["sub"] == str(test_user.id)
    assert payload["type"] == "access"


def test_login_wrong_password(client, test_user):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "wrongpassword"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever123"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me(client, test_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == test_user.id
    assert response.json()["fullName"] == "Test Customer"
