import logging

import stripe

from aqva.exceptions import ConfigurationError, UpstreamProviderError

logger = logging.getLogger(__name__)

PRODUCT_NAME = "AQVA Water Delivery"


def create_checkout_session(
    order_id: int,
    user_id: int,
    amount_cents: int,
    success_url: str,
    cancel_url: str,
) -> tuple[str, str]:
    """Create Stripe Checkout Session and return (checkout URL, session ID)."""
    from aqva.config import settings

    if not settings.STRIPE_SECRET_KEY:
        raise ConfigurationError("STRIPE_SECRET_KEY is not set")
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": settings.CHECKOUT_CURRENCY,
                        "product_data": {"name": PRODUCT_NAME},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=str(order_id),
            metadata={"order_id": str(order_id), "user_id": str(user_id)},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe session create failed for order %s: %s", order_id, exc, exc_info=True)
        raise UpstreamProviderError("Payment failed, try again.") from exc

    if not session.url or not session.id:
        logger.error("Stripe returned a session without url/id for order %s", order_id)
        raise UpstreamProviderError("Payment failed, try again.")
    return session.url, session.id
