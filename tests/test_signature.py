import pytest
import stripe

from aqva.exceptions import InvalidSignatureError, MalformedSignatureError
from aqva.services.webhook_signature import (
    compute_signature,
    parse_signature_header,
    sign_payload,
    verify_signature,
)

SECRET = "whsec_unit"
BODY = b'{"type": "checkout.session.completed"}'
NOW = 1_700_000_000


def test_parse_header_collects_all_v1_signatures():
    timestamp, signatures = parse_signature_header("t=123,v1=aaa,v0=zzz,v1=bbb")
    assert timestamp == 123
    assert signatures == ["aaa", "bbb"]


def test_parse_header_rejects_non_integer_timestamp():
    with pytest.raises(MalformedSignatureError, match="Invalid timestamp"):
        parse_signature_header("t=soon,v1=aaa")


def test_verify_accepts_valid_signature():
    header = sign_payload(BODY, SECRET, timestamp=NOW)
    assert verify_signature(BODY, header, SECRET, now=NOW) == NOW


def test_verify_accepts_any_matching_candidate():
    good = compute_signature(BODY, SECRET, NOW)
    header = f"t={NOW},v1={'0' * 64},v1={good}"
    assert verify_signature(BODY, header, SECRET, now=NOW) == NOW


@pytest.mark.parametrize("age", [300, -300])
def test_verify_accepts_edge_of_tolerance(age):
    header = sign_payload(BODY, SECRET, timestamp=NOW - age)
    verify_signature(BODY, header, SECRET, tolerance=300, now=NOW)


@pytest.mark.parametrize("age", [301, -301])
def test_verify_rejects_outside_tolerance(age):
    header = sign_payload(BODY, SECRET, timestamp=NOW - age)
    with pytest.raises(InvalidSignatureError) as exc_info:
        verify_signature(BODY, header, SECRET, tolerance=300, now=NOW)
    assert exc_info.value.message == "Invalid signature"
    assert exc_info.value.status_code == 401


def test_verify_rejects_modified_body():
    header = sign_payload(BODY, SECRET, timestamp=NOW)
    with pytest.raises(InvalidSignatureError, match="Invalid signature"):
        verify_signature(BODY + b"x", header, SECRET, now=NOW)


def test_verify_rejects_missing_header():
    with pytest.raises(MalformedSignatureError) as exc_info:
        verify_signature(BODY, None, SECRET, now=NOW)
    assert exc_info.value.status_code == 400


def test_verify_delegates_signature_check_to_stripe(monkeypatch):
    header = sign_payload(BODY, SECRET, timestamp=NOW)
    calls = []

    def fake_verify_header(payload, sig_header, secret, tolerance=None):
        calls.append((payload, sig_header, secret))
        raise stripe.SignatureVerificationError("No signatures found", sig_header, payload)

    monkeypatch.setattr(stripe.WebhookSignature, "verify_header", fake_verify_header)

    with pytest.raises(InvalidSignatureError, match="Invalid signature"):
        verify_signature(BODY, header, SECRET, now=NOW)
    assert calls == [(BODY, header, SECRET)]


def test_verify_rejects_non_utf8_body():
    body = b"\xff\xfe"
    header = sign_payload(body, SECRET, timestamp=NOW)
    with pytest.raises(InvalidSignatureError) as exc_info:
        verify_signature(body, header, SECRET, now=NOW)
    assert exc_info.value.status_code == 401
