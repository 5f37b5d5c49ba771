from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aqva.dependencies import get_current_user
from aqva.exceptions import ConflictError
from aqva.models import User, get_db
from aqva.schemas.orders import (
    ActiveOrderResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderTrackingResponse,
    RiderLocationResponse,
    TransitionResponse,
    order_to_response,
)
from aqva.services import delivery, locations, order_store
from aqva.services.timeutils import isoformat_or_none

router = APIRouter()


@router.post(
    "",
    response_model=OrderResponse,
    summary="Create a delivery order",
)
def create_order(
    body: OrderCreateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Create a pending, unpaid order for the selected address, zone and pack.
    The total is the pack price times quantity. Pay it with `POST /api/payments/checkout`.
    """
    order = order_store.create_order(
        db,
        customer_id=current_user.id,
        address_id=body.address_id,
        zone_id=body.zone_id,
        pack_id=body.pack_id,
        quantity=body.quantity,
        payment_method=body.payment_method.value,
    )
    return order_to_response(order)


@router.get(
    "/me",
    response_model=list[OrderResponse],
    summary="List my orders",
)
def my_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Returns the list of orders for the current user, newest first."""
    return [order_to_response(o) for o in order_store.list_orders_for_customer(db, current_user.id)]


@router.get(
    "/active",
    response_model=ActiveOrderResponse,
    summary="Get my active order",
)
def active_order(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    order = order_store.get_active_order_for_customer(db, current_user.id)
    return ActiveOrderResponse(order=order_to_response(order) if order else None)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
def get_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Returns one order (only for the current user's orders). Polled by the client app."""
    order = order_store.get_order_for_customer(db, current_user.id, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order_to_response(order)


@router.post(
    "/{order_id}/cancel",
    response_model=TransitionResponse,
    summary="Cancel my order",
)
def cancel_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Cancel while pending, assigned or en route. Returns 409 once the order is terminal."""
    result = delivery.cancel_order(db, current_user.id, order_id)
    if result.conflict:
        raise ConflictError(result.reason, current_status=result.order.status)
    return TransitionResponse(applied=True, order=order_to_response(result.order))


@router.get(
    "/{order_id}/rider-location",
    response_model=OrderTrackingResponse,
    summary="Get the assigned rider's latest position",
)
def rider_location(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Latest rider position for one of my orders. `tracking` turns false once the
    order is terminal or has no rider; clients stop polling at that point.
    """
    tracking = locations.get_rider_location_for_order(db, current_user.id, order_id)
    location = None
    if tracking.location is not None:
        location = RiderLocationResponse(
            rider_id=tracking.location.rider_id,
            latitude=tracking.location.latitude,
            longitude=tracking.location.longitude,
            last_updated_at=isoformat_or_none(tracking.location.last_updated_at),
        )
    return OrderTrackingResponse(
        order_id=tracking.order.id,
        status=tracking.order.status,
        tracking=tracking.tracking,
        location=location,
        message=tracking.message,
        poll_interval_seconds=tracking.poll_interval_seconds,
    )
