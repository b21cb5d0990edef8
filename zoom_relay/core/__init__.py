"""Relay core - domain models, event variants and exceptions."""
from .exceptions import (
    RelayError,
    ValidationError,
    SignatureError,
    MissingSignatureHeadersError,
    InvalidSignatureError,
    AuthConfigError,
    UpstreamError,
    TokenError,
    DeliveryError,
    CompletionError,
    EmptyCompletionError,
    StreamParseError,
)
from .models import Role, Turn, AccessToken, StreamFrame, DeliveryResult
from .events import (
    InboundEvent,
    UrlValidationEvent,
    BotInstalledEvent,
    AppDeauthorizedEvent,
    BotNotificationEvent,
    InteractiveMessageActionEvent,
    TeamChatEvent,
    UnrecognizedEvent,
    decode_event,
    get_event_type,
)

__all__ = [
    # Exceptions
    "RelayError",
    "ValidationError",
    "SignatureError",
    "MissingSignatureHeadersError",
    "InvalidSignatureError",
    "AuthConfigError",
    "UpstreamError",
    "TokenError",
    "DeliveryError",
    "CompletionError",
    "EmptyCompletionError",
    "StreamParseError",
    # Models
    "Role",
    "Turn",
    "AccessToken",
    "StreamFrame",
    "DeliveryResult",
    # Events
    "InboundEvent",
    "UrlValidationEvent",
    "BotInstalledEvent",
    "AppDeauthorizedEvent",
    "BotNotificationEvent",
    "InteractiveMessageActionEvent",
    "TeamChatEvent",
    "UnrecognizedEvent",
    "decode_event",
    "get_event_type",
]
