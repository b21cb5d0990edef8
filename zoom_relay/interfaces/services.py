"""
Interface Protocols for the relay's outbound collaborators.

Services depend on these abstractions so tests can substitute fakes and
production can swap implementations without touching callers.
"""
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from zoom_relay.core.models import DeliveryResult


class ITokenProvider(Protocol):
    """
    Interface for obtaining chat platform bearer tokens.

    Implementations:
    - ChatbotTokenCache (client-credentials grant, expiry-aware)
    """

    async def get_token(self) -> str:
        """Return a bearer token valid for an outbound call."""
        ...

    def invalidate(self) -> None:
        """Forget any cached token so the next call refetches."""
        ...


class IChatDelivery(Protocol):
    """
    Interface for sending chat messages back to a conversation.

    Implementations:
    - ZoomChatClient (Zoom Team Chat chatbot API)
    """

    async def send(
        self,
        to_jid: str,
        text: str,
        reply_to: Optional[str] = None
    ) -> DeliveryResult:
        """Deliver `text` to the conversation; raises DeliveryError on failure."""
        ...


class ICompletionProvider(Protocol):
    """
    Interface for the LLM provider.

    Implementations:
    - AnthropicClient (Messages API)
    """

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Buffered completion: return the full answer text."""
        ...

    def stream_text(self, messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """Streamed completion: yield text deltas until the stream ends."""
        ...
