"""Rider claim of a pending, paid order.

Only one concurrent claimant can win: the claim is a single conditional
UPDATE that also re-validates, in the same statement, that the rider is online
and holds no other order. The partial unique index on ``orders.rider_id``
backs this up when two claims by the same rider commit concurrently.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from aqva.exceptions import ValidationError
from aqva.models import Order, Rider
from aqva.models.order import (
    PAYMENT_PAID,
    RIDER_HELD_STATUSES,
    STATUS_ASSIGNED,
    STATUS_PENDING,
)
from aqva.services.order_store import TransitionResult, conditional_update, get_order

logger = logging.getLogger(__name__)

ORDER_UNAVAILABLE = "This order is no longer available (taken or not paid)."


def rider_has_active_order(db: Session, rider_id: int) -> bool:
    return (
        db.query(Order.id)
        .filter(Order.rider_id == rider_id, Order.status.in_(sorted(RIDER_HELD_STATUSES)))
        .first()
        is not None
    )


def rider_is_online(db: Session, rider_id: int) -> bool:
    return bool(db.query(Rider.is_online).filter(Rider.id == rider_id).scalar())


def claim_order(db: Session, rider: Rider, order_id: int) -> TransitionResult:
    if not rider_is_online(db, rider.id):
        raise ValidationError("You are offline. Go online before accepting orders.")
    if rider_has_active_order(db, rider.id):
        raise ValidationError("You already have an active delivery. Finish it before taking another one.")

    held = aliased(Order)
    rider_busy = (
        db.query(held.id)
        .filter(held.rider_id == rider.id, held.status.in_(sorted(RIDER_HELD_STATUSES)))
        .exists()
    )
    rider_online = db.query(Rider.id).filter(Rider.id == rider.id, Rider.is_online == True).exists()

    try:
        updated = conditional_update(
            db,
            order_id,
            expect={"status": STATUS_PENDING, "payment_status": PAYMENT_PAID, "rider_id": None},
            values={"status": STATUS_ASSIGNED, "rider_id": rider.id},
            extra_conditions=(~rider_busy, rider_online),
        )
    except IntegrityError:
        logger.warning("Rider %s claim on order %s rejected by held-order index", rider.id, order_id)
        return TransitionResult(applied=False, order=get_order(db, order_id), reason=ORDER_UNAVAILABLE)

    if updated != 1:
        logger.info("Rider %s lost claim on order %s", rider.id, order_id)
        return TransitionResult(applied=False, order=get_order(db, order_id), reason=ORDER_UNAVAILABLE)

    logger.info("Order %s claimed by rider %s", order_id, rider.id)
    return TransitionResult(applied=True, order=get_order(db, order_id))
