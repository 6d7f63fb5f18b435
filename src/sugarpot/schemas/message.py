"""Chat message schemas shared by the realtime channel and REST history."""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from sugarpot.db.time import isoformat
from sugarpot.models import Message, MessageType

from .common import CamelModel


class ClientEvent(BaseModel):
    """Inbound realtime frame: ``{"event": name, "data": {...}}``."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class SendMessageData(CamelModel):
    conversation_id: int = Field(
        ..., validation_alias=AliasChoices("conversationId", "conversation_id", "matchId")
    )
    receiver_id: int
    message_type: MessageType = MessageType.TEXT
    body: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("body", "messageText")
    )


class MessageIdsData(CamelModel):
    message_ids: list[int] = Field(default_factory=list)


class GetMessagesData(CamelModel):
    conversation_id: int = Field(
        ..., validation_alias=AliasChoices("conversationId", "conversation_id", "matchId")
    )
    limit: int | None = Field(None, ge=1)
    before_sequence_id: int | None = None


class MessagePayload(CamelModel):
    """Full message as pushed in ``message_sent``, ``new_message`` and history."""

    id: int
    conversation_id: int
    sequence_id: int
    message_type: MessageType
    body: str
    sender_id: int
    receiver_id: int
    is_sent: bool | None = None
    delivered: bool
    sent_at: str
    delivered_at: str | None = None
    read_at: str | None = None

    @classmethod
    def from_message(cls, message: Message, viewer_id: int | None = None) -> "MessagePayload":
        """Build the payload; ``is_sent`` is filled when a viewer is given."""
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sequence_id=message.sequence_id,
            message_type=message.message_type,
            body=message.body,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            is_sent=None if viewer_id is None else message.sender_id == viewer_id,
            delivered=message.delivered,
            sent_at=isoformat(message.sent_at) or "",
            delivered_at=isoformat(message.delivered_at),
            read_at=isoformat(message.read_at),
        )


def message_payload(message: Message, viewer_id: int | None = None) -> dict[str, Any]:
    """Return the JSON-ready camelCase dict for ``message``."""
    return MessagePayload.from_message(message, viewer_id).model_dump(mode="json", by_alias=True)


def delivered_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "conversationId": message.conversation_id,
        "sequenceId": message.sequence_id,
        "deliveredAt": isoformat(message.delivered_at),
    }


def read_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "conversationId": message.conversation_id,
        "sequenceId": message.sequence_id,
        "readAt": isoformat(message.read_at),
    }
