"""Validation and sanitisation for the direct-send surface."""
import re
from typing import Any, Dict, Iterable, List

from zoom_relay.config import MAX_MESSAGE_LENGTH

_JID_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")

# C0/C1 control characters except tab and newline
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


def is_valid_jid(jid: Any) -> bool:
    """True for `local@domain` shaped identifiers."""
    return isinstance(jid, str) and bool(_JID_PATTERN.match(jid))


def describe_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Flatten pydantic error entries into `field: message` strings.

    Errors on the body as a whole (empty `loc`) keep just the message.
    """
    problems = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "is invalid")
        problems.append(f"{field}: {message}" if field else message)
    return problems


def sanitize_message(message: Any) -> str:
    """Trim, drop control characters and clamp to the platform length limit."""
    if not isinstance(message, str):
        return ""
    cleaned = _CONTROL_CHARS.sub("", message.strip())
    return cleaned[:MAX_MESSAGE_LENGTH]
