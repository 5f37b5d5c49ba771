from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aqva.dependencies import get_current_user
from aqva.models import Address, Pack, User, Zone, get_db
from aqva.schemas.catalog import AddressCreateRequest, AddressResponse, PackResponse, ZoneResponse

router = APIRouter()


@router.get(
    "/zones",
    response_model=list[ZoneResponse],
    summary="List delivery zones",
)
def list_zones(
    db: Annotated[Session, Depends(get_db)],
):
    """Returns all active zones."""
    zones = db.query(Zone).filter(Zone.is_active == True).order_by(Zone.name).all()
    return [ZoneResponse.model_validate(zone) for zone in zones]


@router.get(
    "/packs",
    response_model=list[PackResponse],
    summary="List packs",
)
def list_packs(
    db: Annotated[Session, Depends(get_db)],
):
    """Returns all active packs with their unit price in cents."""
    packs = db.query(Pack).filter(Pack.is_active == True).order_by(Pack.id).all()
    return [PackResponse.model_validate(pack) for pack in packs]


@router.get(
    "/addresses",
    response_model=list[AddressResponse],
    summary="List my addresses",
)
def list_addresses(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    addresses = db.query(Address).filter(Address.user_id == current_user.id).order_by(Address.id).all()
    return [AddressResponse.model_validate(address) for address in addresses]


@router.post(
    "/addresses",
    response_model=AddressResponse,
    summary="Add an address",
)
def create_address(
    body: AddressCreateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Adds a delivery address. The first address becomes the default."""
    line1 = body.line1.strip()
    if not line1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter at least address line 1.",
        )
    has_address = db.query(Address.id).filter(Address.user_id == current_user.id).first() is not None
    address = Address(
        user_id=current_user.id,
        label=(body.label or "").strip() or "Home",
        line1=line1,
        line2=body.line2,
        city=body.city or None,
        postcode=body.postcode or None,
        country="ZA",
        is_default=not has_address,
    )
    db.add(address)
    db.commit()
    db.refresh(address)
    return AddressResponse.model_validate(address)
