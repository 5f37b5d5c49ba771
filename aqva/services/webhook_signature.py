"""Stripe-style webhook signature verification.

Header format: ``t=<unix_ts>,v1=<hex_hmac>[,v1=<hex_hmac>...]``. The signed
payload is ``"{t}.{raw_body}"`` under HMAC-SHA256 with the endpoint secret.
"""

import hashlib
import hmac
import logging
import time

import stripe

from aqva.exceptions import InvalidSignatureError, MalformedSignatureError

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"
DEFAULT_TOLERANCE_SECONDS = 300


def parse_signature_header(header: str | None) -> tuple[int, list[str]]:
    """Return ``(timestamp, signatures)`` or raise :class:`MalformedSignatureError`."""
    if not header:
        raise MalformedSignatureError("Missing signature")

    timestamp_raw = None
    signatures = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp_raw = value.strip()
        elif key == SIGNATURE_SCHEME and value.strip():
            signatures.append(value.strip())

    if not timestamp_raw or not signatures:
        raise MalformedSignatureError("Missing signature")
    try:
        timestamp = int(timestamp_raw)
    except ValueError:
        raise MalformedSignatureError("Invalid timestamp")
    return timestamp, signatures


def compute_signature(raw_body: bytes, secret: str, timestamp: int) -> str:
    """Signature Stripe would send for ``raw_body``; used to sign test events."""
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def sign_payload(raw_body: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header for ``raw_body``."""
    if timestamp is None:
        timestamp = int(time.time())
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(raw_body, secret, timestamp)}"


def verify_signature(
    raw_body: bytes,
    header: str | None,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> int:
    """Verify ``header`` against ``raw_body`` and return the signed timestamp.

    Raises :class:`MalformedSignatureError` for a missing or unparsable header
    and :class:`InvalidSignatureError` when the timestamp is outside the
    tolerance window or no supplied signature matches. Both carry the same
    generic message for every failure cause.
    """
    timestamp, signatures = parse_signature_header(header)

    # stripe only rejects timestamps in the past, so the window is checked here.
    current = int(time.time() if now is None else now)
    if abs(current - timestamp) > tolerance:
        logger.warning("Webhook timestamp %s outside tolerance of %ss (now=%s)", timestamp, tolerance, current)
        raise InvalidSignatureError("Invalid signature")

    try:
        stripe.WebhookSignature.verify_header(raw_body, header, secret)
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        logger.warning("Webhook signature mismatch (%s candidate(s)): %s", len(signatures), e)
        raise InvalidSignatureError("Invalid signature")
    return timestamp
