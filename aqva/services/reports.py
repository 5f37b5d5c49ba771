"""Admin reporting: rider payouts over delivered, unsettled orders."""

import csv
import io
import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.models import Order
from aqva.models.order import STATUS_DELIVERED
from aqva.services.timeutils import db_datetime, isoformat_or_none, utcnow

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["order_id", "rider_id", "user_id", "total_cents", "delivered_at"]


@dataclass(frozen=True)
class RiderPayoutStat:
    rider_id: int
    deliveries_count: int
    delivered_total_cents: int
    payout_cents: int


def _unsettled_deliveries(db: Session):
    return db.query(Order).filter(
        Order.status == STATUS_DELIVERED,
        Order.rider_id.isnot(None),
        Order.rider_paid_at.is_(None),
    )


def rider_payout_stats(db: Session) -> list[RiderPayoutStat]:
    per_delivery = settings.RIDER_PAYOUT_PER_DELIVERY_CENTS
    rows = (
        _unsettled_deliveries(db)
        .with_entities(
            Order.rider_id,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_cents), 0),
        )
        .group_by(Order.rider_id)
        .order_by(func.count(Order.id).desc(), Order.rider_id.asc())
        .all()
    )
    return [
        RiderPayoutStat(
            rider_id=rider_id,
            deliveries_count=count,
            delivered_total_cents=int(total),
            payout_cents=count * per_delivery,
        )
        for rider_id, count, total in rows
    ]


def settle_rider_payouts(db: Session, rider_id: int) -> int:
    """Mark every unsettled delivery of ``rider_id`` as paid out."""
    now = db_datetime(db, utcnow())
    settled = (
        _unsettled_deliveries(db)
        .filter(Order.rider_id == rider_id)
        .update({Order.rider_paid_at: now, Order.updated_at: now}, synchronize_session=False)
    )
    db.commit()
    logger.info("Settled %s deliveries for rider %s", settled, rider_id)
    return settled


def export_unsettled_deliveries_csv(db: Session) -> str:
    orders = _unsettled_deliveries(db).order_by(Order.delivered_at.asc(), Order.id.asc()).all()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for order in orders:
        writer.writerow(
            [order.id, order.rider_id, order.user_id, order.total_cents, isoformat_or_none(order.delivered_at) or ""]
        )
    return buffer.getvalue()
