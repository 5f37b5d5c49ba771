"""Rider position broadcast and customer-side tracking."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.exceptions import AuthorizationError, NotFoundError, ValidationError
from aqva.models import Order, Rider, RiderLocation
from aqva.models.order import STATUS_EN_ROUTE, TERMINAL_STATUSES
from aqva.services.order_store import get_order
from aqva.services.timeutils import db_datetime, utcnow

logger = logging.getLogger(__name__)

LOCATION_NOT_AVAILABLE = "Rider location is not available yet."


@dataclass(frozen=True)
class RiderTracking:
    order: Order
    tracking: bool
    location: RiderLocation | None
    message: str | None
    poll_interval_seconds: int


def is_sharing_active(db: Session, rider_id: int) -> bool:
    """A rider shares its position only while online with an order en route."""
    online = db.query(Rider.is_online).filter(Rider.id == rider_id).scalar()
    if not online:
        return False
    return (
        db.query(Order.id).filter(Order.rider_id == rider_id, Order.status == STATUS_EN_ROUTE).first()
        is not None
    )


def _validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90.0 <= latitude <= 90.0:
        raise ValidationError("latitude must be between -90 and 90")
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError("longitude must be between -180 and 180")


def _upsert_statement(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        return None
    return insert(RiderLocation)


def record_rider_location(db: Session, rider_id: int, latitude: float, longitude: float) -> bool:
    """Upsert the rider's single current-position row.

    Returns False, writing nothing, when sharing is not active.
    """
    _validate_coordinates(latitude, longitude)
    if not is_sharing_active(db, rider_id):
        logger.info("Ignoring location from rider %s: sharing inactive", rider_id)
        return False

    values = {
        "rider_id": rider_id,
        "latitude": latitude,
        "longitude": longitude,
        "last_updated_at": db_datetime(db, utcnow()),
    }
    insert_stmt = _upsert_statement(db.get_bind().dialect.name)
    if insert_stmt is None:
        db.merge(RiderLocation(**values))
    else:
        insert_stmt = insert_stmt.values(**values)
        db.execute(
            insert_stmt.on_conflict_do_update(
                index_elements=["rider_id"],
                set_={
                    "latitude": insert_stmt.excluded.latitude,
                    "longitude": insert_stmt.excluded.longitude,
                    "last_updated_at": insert_stmt.excluded.last_updated_at,
                },
            )
        )
    db.commit()
    return True


def get_rider_location(db: Session, rider_id: int) -> RiderLocation | None:
    return db.query(RiderLocation).filter(RiderLocation.rider_id == rider_id).first()


def should_track(order: Order) -> bool:
    return order.rider_id is not None and order.status not in TERMINAL_STATUSES


def get_rider_location_for_order(db: Session, customer_id: int, order_id: int) -> RiderTracking:
    order = get_order(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.user_id != customer_id:
        raise AuthorizationError("Forbidden (not your order)")

    interval = settings.LOCATION_POLL_INTERVAL_SECONDS
    if not should_track(order):
        return RiderTracking(order=order, tracking=False, location=None, message=None, poll_interval_seconds=interval)

    location = get_rider_location(db, order.rider_id)
    return RiderTracking(
        order=order,
        tracking=True,
        location=location,
        message=None if location else LOCATION_NOT_AVAILABLE,
        poll_interval_seconds=interval,
    )
