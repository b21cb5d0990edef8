"""Zoom Team Chat to Claude relay service."""

__version__ = "1.0.0"
