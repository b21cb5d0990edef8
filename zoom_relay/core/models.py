"""Domain models shared across the relay pipeline."""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    """Conversation participant role."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One message in a conversation's ordered history."""

    role: Role
    content: str

    def to_message(self) -> Dict[str, str]:
        """Serialize to the provider's `messages` entry shape."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(role=Role.ASSISTANT, content=content)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token for outbound chat platform calls.

    `expires_at` is a monotonic-clock deadline; None means the provider did
    not report a lifetime and the token is never reused.
    """

    value: str
    expires_at: Optional[float] = None

    def is_fresh(self, margin_seconds: float = 0.0) -> bool:
        if self.expires_at is None:
            return False
        return time.monotonic() + margin_seconds < self.expires_at


@dataclass(frozen=True)
class StreamFrame:
    """One Server-Sent-Events frame from the LLM provider."""

    event_type: str
    data: str

    @property
    def is_done_sentinel(self) -> bool:
        return self.data == "[DONE]"


@dataclass
class DeliveryResult:
    """Outcome of a chat message delivery."""

    to_jid: str
    response: Dict[str, Any]

    @property
    def message_id(self) -> Optional[str]:
        return self.response.get("message_id") or self.response.get("id")
