"""Dependency injection for services."""
from zoom_relay.config import settings
from zoom_relay.clients.anthropic_client import AnthropicClient
from zoom_relay.clients.token_cache import ChatbotTokenCache
from zoom_relay.clients.zoom_client import ZoomChatClient
from zoom_relay.implementations.conversation_store import InMemoryConversationStore
from zoom_relay.services.completion_service import CompletionService
from zoom_relay.services.dispatcher import EventDispatcher


# Singletons
_store = None
_token_cache = None
_chat_client = None
_completion_client = None
_completion_service = None
_dispatcher = None


def get_store():
    """
    Get conversation store implementation (singleton).

    Returns:
        InMemoryConversationStore instance (implements IConversationStore)
    """
    global _store
    if _store is None:
        _store = InMemoryConversationStore()
    return _store


def get_token_cache():
    """
    Get chatbot token cache (singleton).

    Returns:
        ChatbotTokenCache instance (implements ITokenProvider)
    """
    global _token_cache
    if _token_cache is None:
        _token_cache = ChatbotTokenCache.from_settings(settings)
    return _token_cache


def get_chat_client():
    """
    Get Zoom Team Chat delivery client (singleton).

    Returns:
        ZoomChatClient instance (implements IChatDelivery)
    """
    global _chat_client
    if _chat_client is None:
        _chat_client = ZoomChatClient.from_settings(settings, get_token_cache())
    return _chat_client


def get_completion_client():
    """
    Get LLM completion client (singleton).

    Returns:
        AnthropicClient instance (implements ICompletionProvider)
    """
    global _completion_client
    if _completion_client is None:
        _completion_client = AnthropicClient.from_settings(settings)
    return _completion_client


def get_completion_service():
    """Get completion service (singleton)."""
    global _completion_service
    if _completion_service is None:
        _completion_service = CompletionService(
            store=get_store(),
            provider=get_completion_client(),
            delivery=get_chat_client(),
            streaming=settings.LLM_STREAMING,
            timeout=settings.LLM_DEADLINE_SECONDS
        )
    return _completion_service


def get_dispatcher():
    """Get webhook event dispatcher (singleton)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher(get_completion_service(), get_chat_client())
    return _dispatcher


async def close_clients():
    """Close outbound HTTP clients and reset singletons (called on shutdown)."""
    global _token_cache, _chat_client, _completion_client, _completion_service, _dispatcher

    for client in (_chat_client, _token_cache, _completion_client):
        if client is not None:
            await client.close()

    _token_cache = None
    _chat_client = None
    _completion_client = None
    _completion_service = None
    _dispatcher = None
