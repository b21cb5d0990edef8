"""
Interface protocols for dependency inversion.

These protocols define abstract interfaces that services depend on,
enabling easy testing and swapping of implementations.
"""

from .storage import IConversationStore
from .services import ITokenProvider, IChatDelivery, ICompletionProvider

__all__ = [
    "IConversationStore",
    "ITokenProvider",
    "IChatDelivery",
    "ICompletionProvider",
]
