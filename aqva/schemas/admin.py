from pydantic import BaseModel, EmailStr

from aqva.schemas.orders import OrderResponse


class AdminOrdersResponse(BaseModel):
    orders: list[OrderResponse]
    count: int
    total_cents: int


class RiderPayoutResponse(BaseModel):
    rider_id: int
    deliveries_count: int
    delivered_total_cents: int
    payout_cents: int


class RiderPayoutsResponse(BaseModel):
    riders: list[RiderPayoutResponse]
    total_deliveries: int
    total_payout_cents: int


class SettlePayoutResponse(BaseModel):
    rider_id: int
    settled_orders: int


class RiderLinkRequest(BaseModel):
    email: EmailStr
    display_name: str | None = None
    phone: str | None = None
