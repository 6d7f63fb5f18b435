# src/sugarpot/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .chat import router as chat_router
from .matches import router as matches_router
from .messages import router as messages_router

__all__ = [
    "chat_router",
    "matches_router",
    "messages_router",
]
