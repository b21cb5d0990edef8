"""Unit tests for webhook signature verification."""
import hashlib
import hmac

import pytest

from zoom_relay.core.exceptions import (
    AuthConfigError,
    InvalidSignatureError,
    MissingSignatureHeadersError,
    SignatureError,
)
from zoom_relay.utils.signature import compute_signature, verify_webhook_signature

SECRET = "webhook-secret"
NOW = 1_700_000_000
BODY = b'{"event":"bot_notification","payload":{"toJid":"u1@x","message":"hi"}}'


def signed_headers(body=BODY, timestamp=NOW, secret=SECRET):
    return {
        "x-zm-request-timestamp": str(timestamp),
        "x-zm-signature": compute_signature(secret, str(timestamp), body),
    }


def test_compute_signature_v0_scheme():
    expected = hmac.new(SECRET.encode(), b"v0:123:" + BODY, hashlib.sha256).hexdigest()

    assert compute_signature(SECRET, "123", BODY) == f"v0={expected}"
    assert compute_signature(SECRET, "123", BODY.decode()) == f"v0={expected}"


def test_valid_signature():
    verify_webhook_signature(SECRET, signed_headers(), BODY, now=NOW)


def test_headers_are_case_insensitive():
    headers = {key.upper(): value for key, value in signed_headers().items()}

    verify_webhook_signature(SECRET, headers, BODY, now=NOW)


def test_altered_body_fails():
    """Same signature, one byte of body changed."""
    tampered = BODY.replace(b"hi", b"ho")

    with pytest.raises(InvalidSignatureError) as exc_info:
        verify_webhook_signature(SECRET, signed_headers(), tampered, now=NOW)

    assert exc_info.value.message == "Invalid signature"


def test_wrong_secret_fails():
    with pytest.raises(InvalidSignatureError):
        verify_webhook_signature(SECRET, signed_headers(secret="other"), BODY, now=NOW)


@pytest.mark.parametrize("drop", ["x-zm-signature", "x-zm-request-timestamp"])
def test_missing_header_is_distinct_error(drop):
    headers = signed_headers()
    del headers[drop]

    with pytest.raises(MissingSignatureHeadersError) as exc_info:
        verify_webhook_signature(SECRET, headers, BODY, now=NOW)

    assert exc_info.value.message == "Missing signature headers"
    assert exc_info.value.errors == [f"Missing required header: {drop}"]
    assert isinstance(exc_info.value, SignatureError)


def test_stale_timestamp_rejected():
    with pytest.raises(InvalidSignatureError):
        verify_webhook_signature(SECRET, signed_headers(timestamp=NOW - 301), BODY, max_age_seconds=300, now=NOW)


def test_millisecond_timestamp_accepted():
    verify_webhook_signature(SECRET, signed_headers(timestamp=NOW * 1000), BODY, now=NOW)


def test_replay_window_can_be_disabled():
    verify_webhook_signature(SECRET, signed_headers(timestamp=1), BODY, max_age_seconds=0, now=NOW)


def test_non_numeric_timestamp():
    headers = signed_headers()
    headers["x-zm-request-timestamp"] = "yesterday"

    with pytest.raises(InvalidSignatureError):
        verify_webhook_signature(SECRET, headers, BODY, now=NOW)


def test_missing_secret_is_configuration_error():
    with pytest.raises(AuthConfigError):
        verify_webhook_signature("", signed_headers(), BODY, now=NOW)
