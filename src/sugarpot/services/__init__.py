# src/sugarpot/services/__init__.py
"""Business logic services for the Sugarpot application."""

from .chat_session import ChatSession
from .delivery import EventDispatcher, OutboundEvent, WebSocketConnection
from .matching import MatchOutcome, MatchService
from .message_log import MessageLog
from .presence import PresenceRegistry

__all__ = [
    "ChatSession",
    "EventDispatcher",
    "MatchOutcome",
    "MatchService",
    "MessageLog",
    "OutboundEvent",
    "PresenceRegistry",
    "WebSocketConnection",
]
