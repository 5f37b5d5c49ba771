from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from aqva.models.database import Base

STATUS_PENDING = "pending"
STATUS_ASSIGNED = "assigned"
STATUS_EN_ROUTE = "en_route"
STATUS_DELIVERED = "delivered"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    STATUS_PENDING,
    STATUS_ASSIGNED,
    STATUS_EN_ROUTE,
    STATUS_DELIVERED,
    STATUS_FAILED,
    STATUS_CANCELLED,
)
TERMINAL_STATUSES = frozenset({STATUS_DELIVERED, STATUS_FAILED, STATUS_CANCELLED})
ACTIVE_STATUSES = frozenset({STATUS_PENDING, STATUS_ASSIGNED, STATUS_EN_ROUTE})
RIDER_HELD_STATUSES = frozenset({STATUS_ASSIGNED, STATUS_EN_ROUTE})

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"

PAYMENT_METHOD_CARD = "card"

_ACTIVE_SQL = text("status IN ('pending', 'assigned', 'en_route')")
_RIDER_HELD_SQL = text("status IN ('assigned', 'en_route')")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        # At most one active order per customer and one held order per rider.
        Index(
            "uq_orders_active_customer",
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE_SQL,
            postgresql_where=_ACTIVE_SQL,
        ),
        Index(
            "uq_orders_held_rider",
            "rider_id",
            unique=True,
            sqlite_where=_RIDER_HELD_SQL,
            postgresql_where=_RIDER_HELD_SQL,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False)
    pack_id = Column(Integer, ForeignKey("packs.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_cents = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False, default=STATUS_PENDING)
    payment_status = Column(String(32), nullable=False, default=PAYMENT_UNPAID)
    payment_method = Column(String(32), nullable=False, default=PAYMENT_METHOD_CARD)
    rider_id = Column(Integer, ForeignKey("riders.id"), nullable=True, index=True)
    eta_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    rider_paid_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
