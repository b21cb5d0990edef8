"""HTTP clients for the chat platform and the LLM provider."""

from .token_cache import ChatbotTokenCache
from .zoom_client import ZoomChatClient
from .anthropic_client import AnthropicClient

__all__ = ["ChatbotTokenCache", "ZoomChatClient", "AnthropicClient"]
