# src/freelance_chat/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import live_router, messages_router

__all__ = [
    "live_router",
    "messages_router",
]
