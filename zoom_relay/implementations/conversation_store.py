"""In-memory conversation store with per-key locking.

This class implements IConversationStore. History lives for the lifetime of
the process; nothing is persisted across restarts.
"""
import asyncio
import logging
from collections import deque
from typing import Deque, Dict, List

from zoom_relay.config import HISTORY_LIMIT
from zoom_relay.core.models import Turn

logger = logging.getLogger(__name__)


class _KeyLock:
    """
    asyncio.Lock for one conversation key.

    Counts the tasks holding or waiting for it and leaves the store's lock
    map once the last one exits.
    """

    def __init__(self, owner: Dict[str, "_KeyLock"], key: str):
        self._owner = owner
        self._key = key
        self._lock = asyncio.Lock()
        self.users = 0

    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> None:
        self.users += 1
        try:
            await self._lock.acquire()
        except BaseException:
            self._leave()
            raise

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._lock.release()
        self._leave()

    def _leave(self) -> None:
        self.users -= 1
        if self.users == 0 and self._owner.get(self._key) is self:
            del self._owner[self._key]


class InMemoryConversationStore:
    """
    Process-wide conversation history keyed by conversation JID.

    Individual operations never await between reading and writing the map,
    so each one is atomic on the event loop. Multi-step sequences (append the
    user turn, call the model, append the answer) take `lock(key)`, which is
    one lock per key: deliveries for the same key serialise, other
    keys proceed untouched.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._histories: Dict[str, Deque[Turn]] = {}
        self._locks: Dict[str, _KeyLock] = {}

    async def get(self, key: str) -> List[Turn]:
        """Return a snapshot of the key's history."""
        return list(self._histories.get(key, ()))

    async def append(self, key: str, turn: Turn) -> List[Turn]:
        """Append a turn; the bounded deque drops the oldest on overflow."""
        if not key:
            raise ValueError("Conversation key is required")

        history = self._histories.get(key)
        if history is None:
            history = deque(maxlen=self.limit)
            self._histories[key] = history
        history.append(turn)
        return list(history)

    async def trim(self, key: str, limit: int) -> List[Turn]:
        """Keep only the most recent `limit` turns."""
        history = self._histories.get(key)
        if history is None:
            return []

        limit = max(0, min(limit, self.limit))
        while len(history) > limit:
            history.popleft()
        return list(history)

    async def clear(self, key: str) -> bool:
        """Drop a key's history, and its lock when nobody holds it."""
        removed = self._histories.pop(key, None) is not None
        lock = self._locks.get(key)
        if lock is not None and lock.users == 0:
            del self._locks[key]
        if removed:
            logger.info(f"Cleared conversation history for {key}")
        return removed

    async def keys(self) -> List[str]:
        return list(self._histories.keys())

    def lock(self, key: str) -> _KeyLock:
        """Return the key's lock (created on first use, dropped once unused)."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = _KeyLock(self._locks, key)
        return lock
