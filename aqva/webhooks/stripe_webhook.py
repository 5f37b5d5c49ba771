import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.exceptions import SignatureError
from aqva.models import get_db
from aqva.services import payments
from aqva.services.webhook_signature import verify_signature

router = APIRouter()
logger = logging.getLogger(__name__)

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_CHECKOUT_EXPIRED = "checkout.session.expired"


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _correlation_ids(session: dict) -> tuple[int | None, str | None]:
    """Pull (order_id, session_id) out of a Checkout Session object."""
    metadata = _as_dict(session.get("metadata"))
    raw_order_id = metadata.get("order_id") or session.get("client_reference_id")
    session_id = session.get("id")
    if not isinstance(session_id, str):
        session_id = None
    if not raw_order_id:
        return None, session_id
    try:
        order_id = int(raw_order_id)
    except (TypeError, ValueError):
        logger.warning("Invalid order_id format in webhook: %r", raw_order_id)
        return None, session_id
    if order_id <= 0:
        logger.warning("Invalid non-positive order_id in webhook: %s", order_id)
        return None, session_id
    return order_id, session_id


def _amount_cents(session: dict) -> int | None:
    amount_total = session.get("amount_total")
    if amount_total is None:
        return None
    try:
        return int(amount_total)
    except (TypeError, ValueError):
        logger.warning("Invalid amount_total in webhook: %r", amount_total)
        return None


@router.post(
    "/stripe",
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Stripe sends checkout events here. The raw body is verified against
    the `stripe-signature` header before anything is parsed.

    `checkout.session.completed` marks the order paid and records one payment row
    per session; redelivery of the same event changes nothing further.
    `checkout.session.expired` marks a pending payment row failed.
    Other event types are acknowledged and ignored.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not set; rejecting webhook")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    try:
        verify_signature(payload, sig_header, secret, tolerance=settings.WEBHOOK_TOLERANCE_SECONDS)
    except SignatureError as e:
        logger.warning("Rejected webhook: %s", e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)

    try:
        event = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as e:
        logger.error("Invalid webhook payload: %s", e)
        raise HTTPException(status_code=400, detail="Invalid payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")

    event_type = event.get("type")
    if event_type not in {EVENT_CHECKOUT_COMPLETED, EVENT_CHECKOUT_EXPIRED}:
        logger.info("Ignoring webhook event type %s", event_type)
        return {"received": True, "ignored": event_type}

    session = _as_dict(_as_dict(event.get("data")).get("object"))
    order_id, session_id = _correlation_ids(session)
    if order_id is None or not session_id:
        logger.warning("Webhook %s has no usable order_id or session id", event_type)
        return {"received": True, "note": "missing order_id"}

    try:
        if event_type == EVENT_CHECKOUT_COMPLETED:
            known = payments.confirm_checkout(
                db,
                order_id,
                session_id,
                amount_cents=_amount_cents(session),
                currency=session.get("currency"),
            )
        else:
            known = payments.expire_checkout(db, order_id, session_id)
    except Exception as e:
        logger.error("Error processing %s for order %s: %s", event_type, order_id, e, exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    if not known:
        return {"received": True, "note": "order not found"}
    return {"received": True}
