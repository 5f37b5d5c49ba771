from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aqva.dependencies import get_current_rider
from aqva.exceptions import ConflictError
from aqva.models import Rider, get_db
from aqva.schemas.orders import OrderResponse, TransitionResponse, order_to_response
from aqva.schemas.riders import (
    LocationUpdateRequest,
    LocationUpdateResponse,
    OnlineRequest,
    RiderResponse,
)
from aqva.services import claims, delivery, locations, order_store, riders
from aqva.services.order_store import TransitionResult

router = APIRouter()


def _transition_response(result: TransitionResult) -> TransitionResponse:
    if result.conflict:
        raise ConflictError(result.reason, current_status=result.order.status if result.order else None)
    return TransitionResponse(applied=True, order=order_to_response(result.order))


@router.get("/me", response_model=RiderResponse, summary="Get my rider profile")
def me(rider: Annotated[Rider, Depends(get_current_rider)]):
    return RiderResponse.model_validate(rider)


@router.post("/me/online", response_model=RiderResponse, summary="Go online or offline")
def set_online(
    body: OnlineRequest,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    """Going offline is refused (409) while you hold an assigned or en-route order."""
    return RiderResponse.model_validate(riders.set_online(db, rider, body.is_online))


@router.post("/me/location", response_model=LocationUpdateResponse, summary="Report my position")
def report_location(
    body: LocationUpdateRequest,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Upserts your current position while you are online with an order en route.
    `sharing_active=false` means the app should stop sampling.
    """
    accepted = locations.record_rider_location(db, rider.id, body.latitude, body.longitude)
    return LocationUpdateResponse(accepted=accepted, sharing_active=accepted)


@router.get("/orders/available", response_model=list[OrderResponse], summary="List claimable orders")
def available_orders(
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    """Pending, paid and unassigned orders, oldest first."""
    return [order_to_response(o) for o in order_store.list_available_orders(db)]


@router.get("/orders/mine", response_model=list[OrderResponse], summary="List my active deliveries")
def my_deliveries(
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    return [order_to_response(o) for o in order_store.list_active_orders_for_rider(db, rider.id)]


@router.post("/orders/{order_id}/claim", response_model=TransitionResponse, summary="Accept an order")
def claim_order(
    order_id: int,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    """Exactly one rider wins a claim; the others get 409 and should refresh the list."""
    return _transition_response(claims.claim_order(db, rider, order_id))


@router.post("/orders/{order_id}/start", response_model=TransitionResponse, summary="Start delivery")
def start_delivery(
    order_id: int,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    return _transition_response(delivery.start_delivery(db, rider, order_id))


@router.post("/orders/{order_id}/delivered", response_model=TransitionResponse, summary="Mark delivered")
def mark_delivered(
    order_id: int,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    return _transition_response(delivery.mark_delivered(db, rider, order_id))


@router.post("/orders/{order_id}/undeliverable", response_model=TransitionResponse, summary="Mark undeliverable")
def mark_undeliverable(
    order_id: int,
    rider: Annotated[Rider, Depends(get_current_rider)],
    db: Annotated[Session, Depends(get_db)],
):
    return _transition_response(delivery.mark_undeliverable(db, rider, order_id))
