from enum import Enum

from pydantic import BaseModel, Field

from aqva.models import Order
from aqva.services.timeutils import isoformat_or_none


class PaymentMethod(str, Enum):
    CARD = "card"


class OrderCreateRequest(BaseModel):
    address_id: int | None = None
    zone_id: int | None = None
    pack_id: int | None = None
    quantity: int = 1
    payment_method: PaymentMethod = PaymentMethod.CARD

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "address_id": 1,
                    "zone_id": 1,
                    "pack_id": 1,
                    "quantity": 2,
                    "payment_method": "card",
                }
            ]
        }
    }


class OrderResponse(BaseModel):
    id: int
    user_id: int
    address_id: int
    zone_id: int
    pack_id: int
    quantity: int
    total_cents: int
    status: str
    payment_status: str
    payment_method: str
    rider_id: int | None = None
    eta_minutes: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None
    failed_at: str | None = None


class ActiveOrderResponse(BaseModel):
    order: OrderResponse | None = None


class TransitionResponse(BaseModel):
    applied: bool
    order: OrderResponse


class RiderLocationResponse(BaseModel):
    rider_id: int
    latitude: float
    longitude: float
    last_updated_at: str | None = None


class OrderTrackingResponse(BaseModel):
    order_id: int
    status: str
    tracking: bool
    location: RiderLocationResponse | None = None
    message: str | None = None
    poll_interval_seconds: int = Field(ge=1)


def order_to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        address_id=order.address_id,
        zone_id=order.zone_id,
        pack_id=order.pack_id,
        quantity=order.quantity,
        total_cents=order.total_cents,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        rider_id=order.rider_id,
        eta_minutes=order.eta_minutes,
        created_at=isoformat_or_none(order.created_at),
        updated_at=isoformat_or_none(order.updated_at),
        delivered_at=isoformat_or_none(order.delivered_at),
        cancelled_at=isoformat_or_none(order.cancelled_at),
        failed_at=isoformat_or_none(order.failed_at),
    )
