"""Rider-driven delivery progression and customer cancellation.

    assigned -> en_route -> delivered | failed
    pending | assigned | en_route -> cancelled   (customer only)

Each transition is one conditional update keyed on the expected prior status
and owner, so a status can never move backwards.
"""

import logging

from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.exceptions import AuthorizationError, NotFoundError
from aqva.models import Rider
from aqva.models.order import (
    ACTIVE_STATUSES,
    RIDER_HELD_STATUSES,
    STATUS_ASSIGNED,
    STATUS_CANCELLED,
    STATUS_DELIVERED,
    STATUS_EN_ROUTE,
    STATUS_FAILED,
)
from aqva.services.order_store import TransitionResult, conditional_update, get_order
from aqva.services.timeutils import utcnow

logger = logging.getLogger(__name__)

STALE_ORDER = "Order state changed. Please refresh."


def _rider_transition(
    db: Session,
    rider: Rider,
    order_id: int,
    expected_status,
    values: dict,
    action: str,
) -> TransitionResult:
    updated = conditional_update(
        db,
        order_id,
        expect={"status": expected_status, "rider_id": rider.id},
        values=values,
    )
    order = get_order(db, order_id)
    if updated != 1:
        logger.warning(
            "Rider %s %s on order %s matched no rows (current status=%s)",
            rider.id,
            action,
            order_id,
            order.status if order else None,
        )
        return TransitionResult(applied=False, order=order, reason=STALE_ORDER)
    logger.info("Rider %s %s on order %s", rider.id, action, order_id)
    return TransitionResult(applied=True, order=order)


def start_delivery(db: Session, rider: Rider, order_id: int) -> TransitionResult:
    return _rider_transition(
        db,
        rider,
        order_id,
        STATUS_ASSIGNED,
        {"status": STATUS_EN_ROUTE, "eta_minutes": settings.DEFAULT_ETA_MINUTES},
        "start_delivery",
    )


def mark_delivered(db: Session, rider: Rider, order_id: int) -> TransitionResult:
    return _rider_transition(
        db,
        rider,
        order_id,
        STATUS_EN_ROUTE,
        {"status": STATUS_DELIVERED, "delivered_at": utcnow()},
        "mark_delivered",
    )


def mark_undeliverable(db: Session, rider: Rider, order_id: int) -> TransitionResult:
    return _rider_transition(
        db,
        rider,
        order_id,
        RIDER_HELD_STATUSES,
        {"status": STATUS_FAILED, "failed_at": utcnow()},
        "mark_undeliverable",
    )


def cancel_order(db: Session, customer_id: int, order_id: int) -> TransitionResult:
    """Cancel a customer's order while it is still active.

    A cancel that races a rider's terminal transition loses: if the
    conditional update matches nothing, the order is already terminal and
    the result carries the status that won.
    """
    order = get_order(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.user_id != customer_id:
        raise AuthorizationError("Forbidden (not your order)")

    updated = conditional_update(
        db,
        order_id,
        expect={"user_id": customer_id, "status": ACTIVE_STATUSES},
        values={"status": STATUS_CANCELLED, "cancelled_at": utcnow()},
    )
    order = get_order(db, order_id)
    if updated != 1:
        logger.warning("Cancel of order %s rejected: already %s", order_id, order.status)
        return TransitionResult(
            applied=False,
            order=order,
            reason=f"Order can no longer be cancelled (status={order.status})",
        )

    logger.info("Order %s cancelled by user %s", order_id, customer_id)
    return TransitionResult(applied=True, order=order)
