"""Checkout creation and webhook reconciliation against the payments ledger.

Webhook delivery is at-least-once, so both reconciliation paths are written
to be re-run with the same event: rows are keyed on the provider session id
and updated in place, inserted only when absent.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from aqva.models import Payment, User
from aqva.models.order import (
    ACTIVE_STATUSES,
    PAYMENT_METHOD_CARD,
    PAYMENT_PAID,
    PAYMENT_REFUNDED,
    PAYMENT_UNPAID,
    TERMINAL_STATUSES,
)
from aqva.models.payment import PAYMENT_ROW_FAILED, PAYMENT_ROW_PAID, PAYMENT_ROW_PENDING, PROVIDER_STRIPE
from aqva.services import stripe_service
from aqva.services.order_store import conditional_update, get_order
from aqva.services.timeutils import db_datetime, utcnow

logger = logging.getLogger(__name__)

PAYABLE_PAYMENT_STATUSES = frozenset({PAYMENT_UNPAID, PAYMENT_REFUNDED})


@dataclass(frozen=True)
class CheckoutResult:
    url: str
    session_id: str


def start_checkout(db: Session, user: User, order_id: int) -> CheckoutResult:
    """Open a provider checkout session for one of the caller's orders."""
    order = get_order(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.user_id != user.id:
        raise AuthorizationError("Forbidden (not your order)")
    if order.payment_status == PAYMENT_PAID:
        raise ConflictError("Order already paid", current_status=order.status)
    if order.status in TERMINAL_STATUSES:
        raise ConflictError(f"Order not payable in status={order.status}", current_status=order.status)
    if order.total_cents < settings.MIN_CHECKOUT_AMOUNT_CENTS:
        raise ValidationError(f"Amount too low (>= {settings.MIN_CHECKOUT_AMOUNT_CENTS} cents)")

    tagged = conditional_update(
        db,
        order.id,
        expect={"status": ACTIVE_STATUSES, "payment_status": PAYABLE_PAYMENT_STATUSES},
        values={"payment_method": PAYMENT_METHOD_CARD},
    )
    if tagged != 1:
        order = get_order(db, order_id)
        raise ConflictError("Order is no longer payable", current_status=order.status)

    amount_cents = order.total_cents
    checkout_url, session_id = stripe_service.create_checkout_session(
        order_id=order.id,
        user_id=user.id,
        amount_cents=amount_cents,
        success_url=settings.CHECKOUT_SUCCESS_URL,
        cancel_url=settings.CHECKOUT_CANCEL_URL,
    )

    now = db_datetime(db, utcnow())
    db.add(
        Payment(
            order_id=order_id,
            provider=PROVIDER_STRIPE,
            provider_session_id=session_id,
            amount_cents=amount_cents,
            currency=settings.CHECKOUT_CURRENCY.upper(),
            status=PAYMENT_ROW_PENDING,
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()
    logger.info("Checkout session %s opened for order %s (%s cents)", session_id, order_id, amount_cents)
    return CheckoutResult(url=checkout_url, session_id=session_id)


def _payment_rows(db: Session, order_id: int, session_id: str, provider: str):
    return db.query(Payment).filter(
        Payment.order_id == order_id,
        Payment.provider == provider,
        Payment.provider_session_id == session_id,
    )


def _apply_confirmation(
    db: Session,
    order_id: int,
    session_id: str,
    amount_cents: int | None,
    currency: str | None,
    provider: str,
    allow_insert: bool,
) -> None:
    now = db_datetime(db, utcnow())
    # Conditioned on id only: payment may land after other order fields moved on.
    conditional_update(
        db,
        order_id,
        expect={},
        values={"payment_status": PAYMENT_PAID, "payment_method": PAYMENT_METHOD_CARD},
        commit=False,
    )
    updated = _payment_rows(db, order_id, session_id, provider).update(
        {Payment.status: PAYMENT_ROW_PAID, Payment.updated_at: now},
        synchronize_session=False,
    )
    if updated == 0 and allow_insert:
        db.add(
            Payment(
                order_id=order_id,
                provider=provider,
                provider_session_id=session_id,
                amount_cents=amount_cents or 0,
                currency=(currency or settings.CHECKOUT_CURRENCY).upper(),
                status=PAYMENT_ROW_PAID,
                created_at=now,
                updated_at=now,
            )
        )
    db.commit()


def confirm_checkout(
    db: Session,
    order_id: int,
    session_id: str,
    amount_cents: int | None = None,
    currency: str | None = None,
    provider: str = PROVIDER_STRIPE,
) -> bool:
    """Record a completed checkout. Returns False when the order is unknown."""
    order = get_order(db, order_id)
    if not order:
        logger.warning("Checkout %s completed for unknown order %s", session_id, order_id)
        return False

    if amount_cents is not None and amount_cents != order.total_cents:
        logger.warning(
            "Checkout amount mismatch for order %s: expected=%s, received=%s",
            order_id,
            order.total_cents,
            amount_cents,
        )

    try:
        _apply_confirmation(db, order_id, session_id, amount_cents, currency, provider, allow_insert=True)
    except IntegrityError:
        # A concurrent delivery of the same event inserted the row first.
        db.rollback()
        logger.info("Payment row for session %s inserted concurrently, retrying as update", session_id)
        _apply_confirmation(db, order_id, session_id, amount_cents, currency, provider, allow_insert=False)

    logger.info("Order %s marked as paid (session %s)", order_id, session_id)
    return True


def expire_checkout(
    db: Session,
    order_id: int,
    session_id: str,
    provider: str = PROVIDER_STRIPE,
) -> bool:
    """Record an expired checkout. Returns False when the order is unknown.

    A paid ledger row or a paid order is never demoted by an expiry.
    """
    order = get_order(db, order_id)
    if not order:
        logger.warning("Checkout %s expired for unknown order %s", session_id, order_id)
        return False

    now = db_datetime(db, utcnow())
    _payment_rows(db, order_id, session_id, provider).filter(Payment.status == PAYMENT_ROW_PENDING).update(
        {Payment.status: PAYMENT_ROW_FAILED, Payment.updated_at: now},
        synchronize_session=False,
    )
    reverted = conditional_update(
        db,
        order_id,
        expect={"payment_status": PAYABLE_PAYMENT_STATUSES},
        values={"payment_status": PAYMENT_UNPAID},
        commit=False,
    )
    db.commit()
    if not reverted:
        logger.info("Checkout %s expired but order %s is already paid; order left unchanged", session_id, order_id)
    else:
        logger.info("Checkout %s expired for order %s", session_id, order_id)
    return True
