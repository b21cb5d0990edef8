"""Zoom webhook signature verification (HMAC-SHA256, v0 scheme)."""
import hashlib
import hmac
import time
from typing import Mapping, Optional, Union

from zoom_relay.core.exceptions import (
    AuthConfigError,
    InvalidSignatureError,
    MissingSignatureHeadersError,
)

SIGNATURE_HEADER = "x-zm-signature"
TIMESTAMP_HEADER = "x-zm-request-timestamp"
SIGNATURE_VERSION = "v0"

# Timestamps above this are milliseconds
_MILLISECOND_THRESHOLD = 1e12


def _as_bytes(value: Union[bytes, str]) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def compute_signature(secret: str, timestamp: str, raw_body: Union[bytes, str]) -> str:
    """
    Compute the header value Zoom sends for a request.

    Returns:
        "v0=<hex digest>" of HMAC-SHA256(secret, "v0:{timestamp}:{raw_body}")
    """
    message = b":".join([SIGNATURE_VERSION.encode(), _as_bytes(str(timestamp)), _as_bytes(raw_body)])
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_webhook_signature(
    secret: str,
    headers: Mapping[str, str],
    raw_body: Union[bytes, str],
    max_age_seconds: int = 300,
    now: Optional[float] = None
) -> None:
    """
    Verify a webhook delivery against the shared secret.

    The digest covers the exact raw body bytes, so any change to the body
    invalidates the signature.

    Args:
        secret: Webhook secret token
        headers: Request headers (any case)
        raw_body: Request body exactly as received
        max_age_seconds: Replay window; 0 disables the timestamp check
        now: Current Unix time (defaults to time.time())

    Raises:
        AuthConfigError: If no secret is configured
        MissingSignatureHeadersError: If a signature header is absent
        InvalidSignatureError: If the timestamp is stale or the digest differs
    """
    if not secret:
        raise AuthConfigError("ZOOM_WEBHOOK_SECRET_TOKEN is not configured")

    lowered = {key.lower(): value for key, value in headers.items()}
    signature = lowered.get(SIGNATURE_HEADER)
    timestamp = lowered.get(TIMESTAMP_HEADER)

    missing = [
        name for name, value in ((SIGNATURE_HEADER, signature), (TIMESTAMP_HEADER, timestamp))
        if not value
    ]
    if missing:
        raise MissingSignatureHeadersError(missing)

    try:
        issued_at = float(timestamp)
    except ValueError:
        raise InvalidSignatureError("Invalid request timestamp")

    if max_age_seconds > 0:
        if issued_at > _MILLISECOND_THRESHOLD:
            issued_at /= 1000.0
        current = time.time() if now is None else now
        if abs(current - issued_at) > max_age_seconds:
            raise InvalidSignatureError("Request timestamp outside the allowed window")

    expected = compute_signature(secret, timestamp, raw_body)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        raise InvalidSignatureError()
