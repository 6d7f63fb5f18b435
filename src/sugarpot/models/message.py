"""Chat messages exchanged inside a relationship's conversation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from sugarpot.db.session import Base
from sugarpot.db.time import utcnow


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class Message(Base):
    """Append-only chat message.

    ``id`` is the process-wide global id; ``sequence_id`` orders messages
    within one conversation. Only the delivery and read stamps ever change.
    """

    __tablename__ = "message"
    __table_args__ = (
        UniqueConstraint("conversation_id", "sequence_id", name="uq_message_conversation_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("relationship.id"), nullable=False, index=True
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    sequence_id: Mapped[int] = mapped_column(Integer, nullable=False)

    message_type: Mapped[MessageType] = mapped_column(
        SAEnum(
            MessageType,
            name="message_type",
            native_enum=False,
            values_callable=lambda types: [item.value for item in types],
        ),
        nullable=False,
        default=MessageType.TEXT,
    )
    # Text content, or a media URL for non-text types.
    body: Mapped[str] = mapped_column(Text, nullable=False)

    delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ConversationCounter(Base):
    """Last assigned sequence id for one conversation.

    Incremented with a single UPDATE ... RETURNING so concurrent senders can
    never observe the same value.
    """

    __tablename__ = "conversation_counter"

    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("relationship.id", ondelete="CASCADE"), primary_key=True
    )
    last_sequence_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
