"""SQLAlchemy models for the Sugarpot service."""

from .message import ConversationCounter, Message, MessageType
from .relationship import Relationship
from .user import User

__all__ = [
    "ConversationCounter", "Message", "MessageType",
    "Relationship",
    "User",
]
