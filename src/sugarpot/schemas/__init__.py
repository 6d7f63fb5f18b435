"""
Pydantic schemas for API request/response models.

These schemas define the structure of API and realtime data for
serialization and validation.
"""

from .message import ClientEvent, GetMessagesData, MessageIdsData, MessagePayload, SendMessageData
from .relationship import (
    MatchActionResponse,
    MatchSummary,
    MeetingPlaceRequest,
    ReceivedHeartsResponse,
    RelationshipResponse,
    SwipeRequest,
    TargetUserRequest,
)

__all__ = [
    "ClientEvent", "GetMessagesData", "MessageIdsData", "MessagePayload", "SendMessageData",
    "MatchActionResponse", "MatchSummary", "MeetingPlaceRequest", "ReceivedHeartsResponse",
    "RelationshipResponse", "SwipeRequest", "TargetUserRequest",
]
