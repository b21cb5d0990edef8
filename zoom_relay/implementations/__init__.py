"""Concrete implementations of the relay interfaces."""
from .conversation_store import InMemoryConversationStore

__all__ = ["InMemoryConversationStore"]
