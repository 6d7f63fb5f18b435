"""Append-only, per-conversation ordered message store.

Ordering is defined by ``sequence_id``, assigned from a dedicated counter row
per conversation. Two layers keep the counter race free:

- inside this process, appends to one conversation are funneled through a
  striped lock, so a conversation has a single writer at a time;
- across processes, the counter is advanced with one ``UPDATE ... RETURNING``
  statement, which the database applies atomically.

The global message id is the table's autoincrement key.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sugarpot.core.errors import InvalidParticipantsError, NotAuthorizedError, NotFoundError
from sugarpot.core.settings import settings
from sugarpot.db.time import utcnow
from sugarpot.models import ConversationCounter, Message, MessageType, Relationship

logger = logging.getLogger(__name__)

__all__ = ["MessageLog", "get_message_log"]


class MessageLog:
    """Service owning message ordering and delivery state."""

    def __init__(self, lock_stripes: int | None = None) -> None:
        stripes = max(1, lock_stripes or settings.sequence_lock_stripes)
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, conversation_id: int) -> threading.Lock:
        return self._locks[conversation_id % len(self._locks)]

    @staticmethod
    def get_conversation(db: Session, conversation_id: int, user_id: int) -> Relationship:
        """Return the conversation's relationship if ``user_id`` is a party.

        Raises:
            NotFoundError: If the conversation does not exist.
            NotAuthorizedError: If ``user_id`` is not one of its parties.
        """
        relationship = db.get(Relationship, conversation_id)
        if relationship is None:
            raise NotFoundError("Match not found")
        if not relationship.has_party(user_id):
            raise NotAuthorizedError("Not authorized for this match")
        return relationship

    def append(
        self,
        db: Session,
        conversation_id: int,
        sender_id: int,
        receiver_id: int,
        message_type: MessageType | str,
        body: str,
    ) -> Message:
        """Persist a new message and return it with its ids assigned.

        Raises:
            NotFoundError: If the conversation does not exist.
            InvalidParticipantsError: If sender and receiver are not the two
                parties of the conversation.
        """
        relationship = db.get(Relationship, conversation_id)
        if relationship is None:
            raise NotFoundError("Match not found")
        if (
            sender_id == receiver_id
            or not relationship.has_party(sender_id)
            or relationship.other_party(sender_id) != receiver_id
        ):
            raise InvalidParticipantsError()

        with self._lock_for(conversation_id):
            try:
                sequence_id = self._next_sequence_id(db, conversation_id)
                message = Message(
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    sequence_id=sequence_id,
                    message_type=MessageType(message_type),
                    body=body,
                    delivered=False,
                    sent_at=utcnow(),
                )
                db.add(message)
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.debug(
            "Appended message %s to conversation %s at sequence %s",
            message.id,
            conversation_id,
            sequence_id,
        )
        return message

    @staticmethod
    def _next_sequence_id(db: Session, conversation_id: int) -> int:
        bump = (
            update(ConversationCounter)
            .where(ConversationCounter.conversation_id == conversation_id)
            .values(last_sequence_id=ConversationCounter.last_sequence_id + 1)
            .returning(ConversationCounter.last_sequence_id)
            .execution_options(synchronize_session=False)
        )
        value = db.execute(bump).scalar_one_or_none()
        if value is not None:
            return value

        # First message: seed from any rows already present for the conversation.
        current_max = db.execute(
            select(func.coalesce(func.max(Message.sequence_id), 0)).where(
                Message.conversation_id == conversation_id
            )
        ).scalar_one()
        try:
            with db.begin_nested():
                db.add(
                    ConversationCounter(
                        conversation_id=conversation_id,
                        last_sequence_id=current_max + 1,
                    )
                )
        except IntegrityError:
            # Another process seeded the counter first.
            return db.execute(bump).scalar_one()
        return current_max + 1

    def history(
        self,
        db: Session,
        conversation_id: int,
        limit: int | None = None,
        before_sequence_id: int | None = None,
    ) -> list[Message]:
        """Return up to ``limit`` messages before the cut, oldest first.

        The window is the newest ``limit`` messages with ``sequence_id`` below
        ``before_sequence_id`` (or overall, when omitted).
        """
        limit = self.clamp_limit(limit)
        stmt = select(Message).where(Message.conversation_id == conversation_id)
        if before_sequence_id is not None:
            stmt = stmt.where(Message.sequence_id < before_sequence_id)
        stmt = stmt.order_by(Message.sequence_id.desc()).limit(limit)
        messages = list(db.execute(stmt).scalars())
        messages.reverse()
        return messages

    @staticmethod
    def clamp_limit(limit: int | None) -> int:
        if limit is None:
            return settings.message_history_default_limit
        return max(0, min(limit, settings.message_history_max_limit))

    def mark_delivered(
        self, db: Session, message_ids: Iterable[int], as_receiver: int
    ) -> list[Message]:
        """Mark messages addressed to ``as_receiver`` as delivered.

        Returns:
            Only the messages that changed; already delivered ones keep their
            original ``delivered_at``.
        """
        ids = _normalize_ids(message_ids)
        if not ids:
            return []
        try:
            changed = self._stamp_delivered(db, ids, as_receiver, utcnow())
            db.commit()
        except Exception:
            db.rollback()
            raise
        return self._load(db, changed)

    def mark_read(
        self, db: Session, message_ids: Iterable[int], as_receiver: int
    ) -> tuple[list[Message], list[Message]]:
        """Stamp ``read_at`` on unread messages addressed to ``as_receiver``.

        A read message has necessarily been delivered, so undelivered ones are
        marked delivered in the same transaction.

        Returns:
            The messages newly read and the messages newly delivered.
        """
        ids = _normalize_ids(message_ids)
        if not ids:
            return [], []
        now = utcnow()
        try:
            delivered = self._stamp_delivered(db, ids, as_receiver, now)
            read = db.execute(
                update(Message)
                .where(
                    Message.id.in_(ids),
                    Message.receiver_id == as_receiver,
                    Message.read_at.is_(None),
                )
                .values(read_at=now)
                .returning(Message.id)
                .execution_options(synchronize_session=False)
            ).scalars().all()
            db.commit()
        except Exception:
            db.rollback()
            raise
        return self._load(db, read), self._load(db, delivered)

    @staticmethod
    def _stamp_delivered(db: Session, ids: list[int], as_receiver: int, now: datetime) -> list[int]:
        # The guard on ``delivered`` makes the transition one-way even when two
        # requests race on the same messages.
        return list(
            db.execute(
                update(Message)
                .where(
                    Message.id.in_(ids),
                    Message.receiver_id == as_receiver,
                    Message.delivered.is_(False),
                )
                .values(delivered=True, delivered_at=now)
                .returning(Message.id)
                .execution_options(synchronize_session=False)
            ).scalars()
        )

    @staticmethod
    def _load(db: Session, ids: Sequence[int]) -> list[Message]:
        if not ids:
            return []
        result = db.execute(
            select(Message)
            .where(Message.id.in_(ids))
            .order_by(Message.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    @staticmethod
    def undelivered_for(messages: Sequence[Message], receiver_id: int) -> list[int]:
        """Return ids of ``messages`` addressed to ``receiver_id`` not yet delivered."""
        return [
            message.id
            for message in messages
            if message.receiver_id == receiver_id and not message.delivered
        ]


def _normalize_ids(message_ids: Iterable[int]) -> list[int]:
    return sorted({int(message_id) for message_id in message_ids})


_message_log: MessageLog | None = None
_message_log_lock = threading.Lock()


def get_message_log() -> MessageLog:
    """Return the process-wide message log.

    The log carries the conversation lock stripes, so every writer in the
    process must share one instance.
    """
    global _message_log
    with _message_log_lock:
        if _message_log is None:
            _message_log = MessageLog()
        return _message_log
