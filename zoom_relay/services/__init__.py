"""Relay services."""
from .completion_service import CompletionService
from .dispatcher import EventDispatcher

__all__ = ["CompletionService", "EventDispatcher"]
