from aqva.models.database import Base, get_db
from aqva.models.user import Admin, User
from aqva.models.rider import Rider, RiderLocation
from aqva.models.catalog import Address, Pack, Zone
from aqva.models.order import Order
from aqva.models.payment import Payment

__all__ = [
    "Base",
    "get_db",
    "User",
    "Admin",
    "Rider",
    "RiderLocation",
    "Zone",
    "Pack",
    "Address",
    "Order",
    "Payment",
]
