"""Conversation storage interface for dependency inversion."""
from typing import AsyncContextManager, List, Protocol

from zoom_relay.core.models import Turn


class IConversationStore(Protocol):
    """Bounded, per-key ordered message history used as LLM context.

    Implementations:
    - InMemoryConversationStore (process-lifetime, per-key asyncio locks)
    - a persistent backend (future) with the same contract

    Every history is capped: appending beyond the limit drops the oldest
    turns first. Histories for different keys are fully independent.

    Example:
        async with store.lock("u1@xmpp.zoom.us"):
            await store.append("u1@xmpp.zoom.us", Turn.user("hi"))
            history = await store.get("u1@xmpp.zoom.us")
    """

    limit: int

    async def get(self, key: str) -> List[Turn]:
        """Return a snapshot of the key's history (empty if none)."""
        ...

    async def append(self, key: str, turn: Turn) -> List[Turn]:
        """Append a turn, trim to the cap, and return the resulting snapshot."""
        ...

    async def trim(self, key: str, limit: int) -> List[Turn]:
        """Keep only the most recent `limit` turns for the key."""
        ...

    async def clear(self, key: str) -> bool:
        """Drop the key's history. Returns True if anything was removed."""
        ...

    async def keys(self) -> List[str]:
        """List keys that currently hold history."""
        ...

    def lock(self, key: str) -> AsyncContextManager:
        """Per-key critical section for multi-step read-modify-write.

        Callers holding the lock for one key never block callers on
        another key.
        """
        ...
