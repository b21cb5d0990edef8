"""Pytest configuration and shared fixtures."""
import os

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("ZOOM_CLIENT_ID", "test-client-id")
os.environ.setdefault("ZOOM_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("ZOOM_BOT_JID", "bot@xmpp.zoom.us")
os.environ.setdefault("ZOOM_ACCOUNT_ID", "test-account")
os.environ.setdefault("ZOOM_WEBHOOK_SECRET_TOKEN", "test-webhook-secret")
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-key")
os.environ.setdefault("INTERNAL_API_KEY", "")

from unittest.mock import AsyncMock

import pytest

from zoom_relay.core.models import DeliveryResult
from zoom_relay.implementations.conversation_store import InMemoryConversationStore


class FakeCompletionProvider:
    """Scripted LLM provider recording the messages it was given."""

    def __init__(self, text="Hello!", chunks=None, error=None):
        self.text = text
        self.chunks = chunks if chunks is not None else [text]
        self.error = error
        self.calls = []

    async def complete(self, messages):
        self.calls.append([dict(m) for m in messages])
        if self.error:
            raise self.error
        return self.text

    async def stream_text(self, messages):
        self.calls.append([dict(m) for m in messages])
        if self.error:
            raise self.error
        for chunk in self.chunks:
            yield chunk


@pytest.fixture
def store():
    """Fresh in-memory conversation store."""
    return InMemoryConversationStore()


@pytest.fixture
def provider():
    """Provider answering "Hello!"."""
    return FakeCompletionProvider()


@pytest.fixture
def delivery():
    """Chat delivery double; every send succeeds."""
    mock = AsyncMock()
    mock.send.return_value = DeliveryResult(to_jid="u1@x", response={"message_id": "msg-1"})
    return mock


@pytest.fixture
def make_provider():
    """Factory for scripted providers (text, chunks or error)."""
    return FakeCompletionProvider
