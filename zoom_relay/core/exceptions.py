"""Custom exceptions for the relay service."""
from typing import Any, List, Optional


class RelayError(Exception):
    """Base exception for the relay service."""
    pass


class ValidationError(RelayError):
    """Raised when an inbound request fails validation.

    Carries the full list of problems so the API layer can return them as
    `details` in a 400 response.
    """

    def __init__(self, errors: List[str], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = list(errors)


class SignatureError(ValidationError):
    """Raised when webhook signature verification fails."""
    pass


class MissingSignatureHeadersError(SignatureError):
    """Raised when the signature or timestamp header is absent."""

    def __init__(self, missing: List[str]):
        super().__init__(
            [f"Missing required header: {name}" for name in missing],
            message="Missing signature headers"
        )


class InvalidSignatureError(SignatureError):
    """Raised when the signature does not match or the request is stale."""

    def __init__(self, reason: str = "Signature mismatch"):
        super().__init__([reason], message="Invalid signature")


class AuthConfigError(RelayError):
    """Raised when credentials needed for an outbound call are not configured."""
    pass


class UpstreamError(RelayError):
    """Raised when an upstream provider call fails.

    Attributes:
        status: HTTP status from the provider (None for transport failures).
        body: Parsed JSON body or raw text returned by the provider.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


class TokenError(UpstreamError):
    """Raised when the chatbot token exchange fails."""
    pass


class DeliveryError(UpstreamError):
    """Raised when a chat message cannot be delivered."""
    pass


class CompletionError(UpstreamError):
    """Raised when the LLM provider call fails."""
    pass


class EmptyCompletionError(CompletionError):
    """Raised when the provider returns no text at all."""

    def __init__(self, message: str = "Empty completion"):
        super().__init__(message)


class StreamParseError(RelayError):
    """Raised for a single malformed stream frame (skipped by the reader)."""
    pass
