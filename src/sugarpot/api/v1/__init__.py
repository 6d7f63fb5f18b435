# src/sugarpot/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import chat_router, matches_router, messages_router

__all__ = [
    "chat_router",
    "matches_router",
    "messages_router",
]
