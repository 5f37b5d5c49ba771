from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from aqva.models.database import Base

PROVIDER_STRIPE = "stripe"

PAYMENT_ROW_PENDING = "pending"
PAYMENT_ROW_PAID = "paid"
PAYMENT_ROW_FAILED = "failed"


class Payment(Base):
    """One provider checkout attempt against an order."""

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("provider", "provider_session_id", name="uq_payments_provider_session"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    provider = Column(String(32), nullable=False, default=PROVIDER_STRIPE)
    provider_session_id = Column(String(255), nullable=False)
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="ZAR")
    status = Column(String(32), nullable=False, default=PAYMENT_ROW_PENDING)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
