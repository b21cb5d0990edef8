"""Inbound webhook events as a closed set of typed variants.

Raw webhook bodies are decoded exactly once, at the ingress boundary, by
`decode_event`. Each variant carries only the fields its handler needs.
Unknown tags decode to `UnrecognizedEvent` so they can be acknowledged
uniformly.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from zoom_relay.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

URL_VALIDATION = "endpoint.url_validation"
BOT_INSTALLED = "bot_installed"
APP_DEAUTHORIZED = "app_deauthorized"
BOT_NOTIFICATION = "bot_notification"
INTERACTIVE_MESSAGE_ACTION = "interactive_message_action"
INTERACTIVE_MESSAGE_ACTIONS = "interactive_message_actions"
APP_MENTION = "team_chat.app_mention"
APP_CONVERSATION_OPENED = "team_chat.app_conversation_opened"
APP_INVITED = "team_chat.app_invited"
CHANNEL_APP_ADDED = "team_chat.channel_app_added"
APP_REMOVED = "team_chat.app_removed"

TEAM_CHAT_EVENTS = (
    APP_MENTION,
    APP_CONVERSATION_OPENED,
    APP_INVITED,
    CHANNEL_APP_ADDED,
    APP_REMOVED,
)


@dataclass(frozen=True)
class InboundEvent:
    """Base for every decoded webhook event."""

    event_type: str


@dataclass(frozen=True)
class UrlValidationEvent(InboundEvent):
    """Endpoint ownership challenge; answered at ingress, never dispatched."""

    plain_token: str


@dataclass(frozen=True)
class BotInstalledEvent(InboundEvent):
    account_id: Optional[str] = None
    user_jid: Optional[str] = None


@dataclass(frozen=True)
class AppDeauthorizedEvent(InboundEvent):
    account_id: Optional[str] = None
    user_id: Optional[str] = None
    client_id: Optional[str] = None


@dataclass(frozen=True)
class BotNotificationEvent(InboundEvent):
    """A user messaged the bot (slash command or direct message)."""

    to_jid: str
    text: str
    user_jid: Optional[str] = None
    user_name: Optional[str] = None
    account_id: Optional[str] = None
    robot_jid: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class InteractiveMessageActionEvent(InboundEvent):
    """A user clicked a button or picked a value on a chatbot card."""

    to_jid: str
    action_value: str = "unknown"
    user_jid: Optional[str] = None
    account_id: Optional[str] = None


@dataclass(frozen=True)
class TeamChatEvent(InboundEvent):
    """Mention, conversation-opened and app lifecycle notifications."""

    channel_name: Optional[str] = None
    channel_id: Optional[str] = None
    operator_id: Optional[str] = None
    user_jid: Optional[str] = None
    to_jid: Optional[str] = None
    message: Optional[str] = None
    message_id: Optional[str] = None
    robot_jid: Optional[str] = None

    def log_context(self) -> Dict[str, Any]:
        """Structured context for log lines, without empty fields."""
        context = {
            "channel_name": self.channel_name,
            "channel": self.channel_id or self.channel_name,
            "operator": self.operator_id,
            "user_jid": self.user_jid,
            "to_jid": self.to_jid,
            "message_id": self.message_id,
            "robot_jid": self.robot_jid,
        }
        return {key: value for key, value in context.items() if value}


@dataclass(frozen=True)
class UnrecognizedEvent(InboundEvent):
    """Any event type this service does not handle."""

    payload: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Decoding
# ============================================================================

def _payload_of(body: Dict[str, Any]) -> Dict[str, Any]:
    payload = body.get("payload")
    return payload if isinstance(payload, dict) else {}


def _decode_url_validation(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    plain_token = _payload_of(body).get("plainToken")
    if not plain_token:
        errors.append("plainToken is required for endpoint validation")
        return None
    return UrlValidationEvent(event_type=event_type, plain_token=plain_token)


def _decode_bot_installed(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    payload = _payload_of(body)
    return BotInstalledEvent(
        event_type=event_type,
        account_id=payload.get("accountId"),
        user_jid=payload.get("userJid"),
    )


def _decode_app_deauthorized(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    payload = _payload_of(body)
    return AppDeauthorizedEvent(
        event_type=event_type,
        account_id=payload.get("account_id") or payload.get("accountId"),
        user_id=payload.get("user_id") or payload.get("userId"),
        client_id=payload.get("client_id"),
    )


def _decode_bot_notification(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    if not isinstance(body.get("payload"), dict):
        errors.append("Payload.payload is required for bot_notification events")
        return None

    payload = body["payload"]
    to_jid = payload.get("toJid")
    text = payload.get("cmd") or payload.get("message")
    if not to_jid:
        errors.append("toJid is required in bot_notification payload")
    elif not isinstance(to_jid, str):
        errors.append("toJid must be a string in bot_notification payload")
    if not text:
        errors.append("Either cmd or message is required in bot_notification payload")
    elif not isinstance(text, str):
        errors.append("cmd or message must be a string in bot_notification payload")
    if errors:
        return None

    reply_to = payload.get("reply_to")
    return BotNotificationEvent(
        event_type=event_type,
        to_jid=to_jid,
        text=text,
        user_jid=payload.get("userJid"),
        user_name=payload.get("userName"),
        account_id=payload.get("accountId"),
        robot_jid=payload.get("robotJid"),
        reply_to=reply_to if isinstance(reply_to, str) else None,
    )


def _decode_interactive_action(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    payload = _payload_of(body)
    to_jid = payload.get("toJid")
    if not to_jid:
        errors.append(f"toJid is required in {event_type} payload")
        return None
    if not isinstance(to_jid, str):
        errors.append(f"toJid must be a string in {event_type} payload")
        return None

    action_item = payload.get("actionItem")
    value = action_item.get("value") if isinstance(action_item, dict) else None
    return InteractiveMessageActionEvent(
        event_type=event_type,
        to_jid=to_jid,
        action_value=value or "unknown",
        user_jid=payload.get("userJid"),
        account_id=payload.get("accountId"),
    )


def _decode_team_chat(event_type: str, body: Dict[str, Any], errors: List[str]) -> Optional[InboundEvent]:
    payload = _payload_of(body)
    obj = payload.get("object") if isinstance(payload.get("object"), dict) else {}
    return TeamChatEvent(
        event_type=event_type,
        channel_name=obj.get("channel_name"),
        channel_id=obj.get("channel_id"),
        operator_id=payload.get("operator_id"),
        user_jid=obj.get("user_jid"),
        to_jid=obj.get("to_jid"),
        message=obj.get("message"),
        message_id=obj.get("message_id"),
        robot_jid=obj.get("robot_jid") or obj.get("robot_name"),
    )


_Decoder = Callable[[str, Dict[str, Any], List[str]], Optional[InboundEvent]]

_DECODERS: Dict[str, _Decoder] = {
    URL_VALIDATION: _decode_url_validation,
    BOT_INSTALLED: _decode_bot_installed,
    APP_DEAUTHORIZED: _decode_app_deauthorized,
    BOT_NOTIFICATION: _decode_bot_notification,
    INTERACTIVE_MESSAGE_ACTION: _decode_interactive_action,
    INTERACTIVE_MESSAGE_ACTIONS: _decode_interactive_action,
    **{event_type: _decode_team_chat for event_type in TEAM_CHAT_EVENTS},
}


def get_event_type(body: Any) -> Optional[str]:
    """Return the `event` tag of a raw webhook body, if any."""
    if not isinstance(body, dict):
        return None
    event_type = body.get("event")
    return event_type if isinstance(event_type, str) and event_type else None


def decode_event(body: Any) -> InboundEvent:
    """
    Validate a raw webhook body and decode it into its event variant.

    Args:
        body: Parsed JSON webhook body ({"event": str, "payload": object})

    Returns:
        The typed event (UnrecognizedEvent for unknown tags)

    Raises:
        ValidationError: With every missing/invalid field listed
    """
    if not isinstance(body, dict) or not body:
        raise ValidationError(["Payload is required"])

    event_type = get_event_type(body)
    if event_type is None:
        raise ValidationError(["Event type is required"])

    decoder = _DECODERS.get(event_type)
    if decoder is None:
        logger.warning(f"Unknown webhook event type: {event_type}")
        return UnrecognizedEvent(event_type=event_type, payload=_payload_of(body))

    errors: List[str] = []
    event = decoder(event_type, body, errors)
    if errors or event is None:
        raise ValidationError(errors)
    return event
