"""Order persistence and the conditional-update primitive.

Every mutation of an existing order goes through :func:`conditional_update`:
a single ``UPDATE ... WHERE`` whose WHERE clause carries the caller's
expectations about the current row. Zero affected rows means someone else got
there first; callers report that as a conflict and reload.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aqva.exceptions import ValidationError
from aqva.models import Address, Order, Pack, Zone
from aqva.models.order import (
    ACTIVE_STATUSES,
    PAYMENT_METHOD_CARD,
    PAYMENT_PAID,
    PAYMENT_UNPAID,
    RIDER_HELD_STATUSES,
    STATUS_PENDING,
)
from aqva.services.timeutils import db_datetime, utcnow

logger = logging.getLogger(__name__)

ACTIVE_ORDER_MESSAGE = "You already have an active order. Please wait for delivery or cancel it."


@dataclass(frozen=True)
class TransitionResult:
    applied: bool
    order: Order | None = None
    reason: str | None = None

    @property
    def conflict(self) -> bool:
        return not self.applied


def _expectation(column, expected: Any):
    if expected is None:
        return column.is_(None)
    if isinstance(expected, (set, frozenset, list, tuple)):
        return column.in_(sorted(expected))
    return column == expected


def _db_value(db: Session, value: Any) -> Any:
    if isinstance(value, datetime):
        return db_datetime(db, value)
    return value


def conditional_update(
    db: Session,
    order_id: int,
    expect: Mapping[str, Any],
    values: Mapping[str, Any],
    extra_conditions: Iterable = (),
    commit: bool = True,
) -> int:
    """Apply ``values`` to the order only if every expectation holds.

    ``expect`` maps a column name to its expected current value; a collection
    means "one of", ``None`` means IS NULL. ``updated_at`` is always bumped.
    Returns the number of rows affected (0 or 1).
    """
    conditions = [Order.id == order_id]
    conditions.extend(_expectation(getattr(Order, name), expected) for name, expected in expect.items())
    conditions.extend(extra_conditions)

    changes = {getattr(Order, name): _db_value(db, value) for name, value in values.items()}
    changes[Order.updated_at] = db_datetime(db, utcnow())

    try:
        updated = db.query(Order).filter(*conditions).update(changes, synchronize_session=False)
        if commit:
            db.commit()
    except IntegrityError:
        db.rollback()
        raise
    return updated


def get_order(db: Session, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_for_customer(db: Session, customer_id: int, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.id == order_id, Order.user_id == customer_id).first()


def get_active_order_for_customer(db: Session, customer_id: int) -> Order | None:
    return (
        db.query(Order)
        .filter(Order.user_id == customer_id, Order.status.in_(sorted(ACTIVE_STATUSES)))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .first()
    )


def list_orders_for_customer(db: Session, customer_id: int) -> list[Order]:
    return (
        db.query(Order)
        .filter(Order.user_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_available_orders(db: Session) -> list[Order]:
    """Pending, paid, unclaimed orders, oldest first."""
    return (
        db.query(Order)
        .filter(
            Order.status == STATUS_PENDING,
            Order.payment_status == PAYMENT_PAID,
            Order.rider_id.is_(None),
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def list_active_orders_for_rider(db: Session, rider_id: int) -> list[Order]:
    return (
        db.query(Order)
        .filter(Order.rider_id == rider_id, Order.status.in_(sorted(RIDER_HELD_STATUSES)))
        .order_by(Order.created_at.asc())
        .all()
    )


def list_orders(db: Session, status: str | None = None) -> list[Order]:
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def create_order(
    db: Session,
    customer_id: int,
    address_id: int | None,
    zone_id: int | None,
    pack_id: int | None,
    quantity: int | None,
    payment_method: str = PAYMENT_METHOD_CARD,
) -> Order:
    """Create a pending, unpaid order priced from the selected pack."""
    if address_id is None or zone_id is None or pack_id is None:
        raise ValidationError("Please select a zone, address and pack.")
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1.")

    address = db.query(Address).filter(Address.id == address_id, Address.user_id == customer_id).first()
    if not address:
        raise ValidationError("Address not found")
    zone = db.query(Zone).filter(Zone.id == zone_id, Zone.is_active == True).first()
    if not zone:
        raise ValidationError("Zone not available")
    pack = db.query(Pack).filter(Pack.id == pack_id, Pack.is_active == True).first()
    if not pack:
        raise ValidationError("Pack not available")

    if get_active_order_for_customer(db, customer_id):
        raise ValidationError(ACTIVE_ORDER_MESSAGE)

    now = db_datetime(db, utcnow())
    order = Order(
        user_id=customer_id,
        address_id=address.id,
        zone_id=zone.id,
        pack_id=pack.id,
        quantity=quantity,
        total_cents=pack.price_cents * quantity,
        status=STATUS_PENDING,
        payment_status=PAYMENT_UNPAID,
        payment_method=payment_method,
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against another create for the same customer.
        db.rollback()
        raise ValidationError(ACTIVE_ORDER_MESSAGE)
    db.refresh(order)
    logger.info("Order %s created for user %s: %s x pack %s = %s cents", order.id, customer_id, quantity, pack.id, order.total_cents)
    return order
