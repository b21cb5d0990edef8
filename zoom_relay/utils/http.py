"""HTTP helpers shared by the outbound clients."""
import base64
from typing import Any

import httpx


def response_body(response: httpx.Response) -> Any:
    """Return the parsed JSON body, or the raw text if it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


def error_detail(body: Any, default: str = "") -> str:
    """Pick the provider's own error description out of an error body."""
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict):
            return str(nested.get("message") or nested.get("type") or default)
        for key in ("error_description", "message", "reason", "error"):
            if body.get(key):
                return str(body[key])
    elif isinstance(body, str) and body:
        return body[:200]
    return default


def build_basic_auth_header(client_id: str, client_secret: str) -> str:
    """
    Build an HTTP Basic auth header value for client credentials.

    Returns:
        e.g. "Basic abc123..."

    Raises:
        ValueError: If either credential is empty
    """
    if not client_id or not client_secret:
        raise ValueError("Missing Zoom client credentials")
    encoded = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"
