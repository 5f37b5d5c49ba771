from aqva.schemas.catalog import AddressCreateRequest, AddressResponse, PackResponse, ZoneResponse
from aqva.schemas.orders import OrderCreateRequest, OrderResponse, OrderTrackingResponse, TransitionResponse
from aqva.schemas.payments import CheckoutRequest, CheckoutResponse

__all__ = [
    "AddressCreateRequest",
    "AddressResponse",
    "PackResponse",
    "ZoneResponse",
    "OrderCreateRequest",
    "OrderResponse",
    "OrderTrackingResponse",
    "TransitionResponse",
    "CheckoutRequest",
    "CheckoutResponse",
]
