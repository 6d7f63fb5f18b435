"""Per-connection realtime chat session.

A ``ChatSession`` exists for one authenticated connection. Each inbound
event is handled in two steps: the store work runs to completion (in a worker
thread, with its own database session) and produces a list of
``OutboundEvent`` values; only then are those events dispatched. A client
therefore never sees a notification for a write that has not committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from sugarpot.core.errors import SugarpotError
from sugarpot.schemas.message import (
    GetMessagesData,
    MessageIdsData,
    SendMessageData,
    delivered_payload,
    message_payload,
    read_payload,
)
from sugarpot.services.delivery import ConnectionHandle, EventDispatcher, OutboundEvent
from sugarpot.services.message_log import MessageLog, get_message_log
from sugarpot.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

__all__ = ["ChatSession"]


def _error(message: str, code: str) -> OutboundEvent:
    return OutboundEvent("error", {"message": message, "code": code})


class ChatSession:
    """Bridges one live connection to the message log and presence registry."""

    def __init__(
        self,
        *,
        user_id: int,
        connection: ConnectionHandle,
        registry: PresenceRegistry,
        session_factory: Callable[[], Session],
        message_log: MessageLog | None = None,
    ) -> None:
        self.user_id = user_id
        self.connection = connection
        self.registry = registry
        self.session_factory = session_factory
        self.message_log = message_log or get_message_log()
        self.dispatcher = EventDispatcher(registry)

    def open(self) -> None:
        """Register this connection as the user's live target."""
        self.registry.register(self.user_id, self.connection)

    def close(self) -> None:
        """Drop the presence entry unless a newer connection replaced it."""
        self.registry.unregister(self.user_id, self.connection)

    async def handle(self, event: str, data: dict[str, Any]) -> list[OutboundEvent]:
        """Process one inbound event and push the resulting notifications."""
        events = await run_in_threadpool(self._process, event, data)
        await self.dispatcher.dispatch(events, origin=self.connection)
        return events

    def _process(self, event: str, data: dict[str, Any]) -> list[OutboundEvent]:
        with self.session_factory() as db:
            try:
                return self._route(db, event, data)
            except ValidationError as exc:
                return [_error(f"Invalid {event} payload: {exc.error_count()} error(s)", "invalid_payload")]
            except SugarpotError as exc:
                return [OutboundEvent("error", exc.to_payload())]
            except SQLAlchemyError:
                logger.exception("Store failure while handling %s for user %s", event, self.user_id)
                db.rollback()
                return [_error(f"Failed to handle {event}", "internal_error")]

    def _route(self, db: Session, event: str, data: dict[str, Any]) -> list[OutboundEvent]:
        match event:
            case "send_message":
                return self.send_message(db, SendMessageData.model_validate(data))
            case "mark_delivered":
                return self.mark_delivered(db, MessageIdsData.model_validate(data))
            case "mark_read":
                return self.mark_read(db, MessageIdsData.model_validate(data))
            case "get_messages":
                return self.get_messages(db, GetMessagesData.model_validate(data))
            case _:
                return [_error(f"Unknown event: {event}", "unknown_event")]

    def send_message(self, db: Session, data: SendMessageData) -> list[OutboundEvent]:
        """Append a message, acknowledge it and push it to the receiver."""
        self.message_log.get_conversation(db, data.conversation_id, self.user_id)
        message = self.message_log.append(
            db,
            data.conversation_id,
            self.user_id,
            data.receiver_id,
            data.message_type,
            data.body,
        )
        events = [OutboundEvent("message_sent", message_payload(message))]

        if not self.registry.is_online(data.receiver_id):
            # Dropped by the dispatcher; the receiver recovers it from history.
            events.append(OutboundEvent("new_message", message_payload(message), data.receiver_id))
            return events

        for delivered in self.message_log.mark_delivered(db, [message.id], data.receiver_id):
            events.append(OutboundEvent("new_message", message_payload(delivered), data.receiver_id))
            events.append(OutboundEvent("message_delivered", delivered_payload(delivered)))
        return events

    def mark_delivered(self, db: Session, data: MessageIdsData) -> list[OutboundEvent]:
        changed = self.message_log.mark_delivered(db, data.message_ids, self.user_id)
        return [
            OutboundEvent("message_delivered", delivered_payload(message), message.sender_id)
            for message in changed
        ]

    def mark_read(self, db: Session, data: MessageIdsData) -> list[OutboundEvent]:
        read, delivered = self.message_log.mark_read(db, data.message_ids, self.user_id)
        events = [
            OutboundEvent("message_delivered", delivered_payload(message), message.sender_id)
            for message in delivered
        ]
        events.extend(
            OutboundEvent("message_read", read_payload(message), message.sender_id)
            for message in read
        )
        return events

    def get_messages(self, db: Session, data: GetMessagesData) -> list[OutboundEvent]:
        """Return a history window; fetching implies the caller is online."""
        self.message_log.get_conversation(db, data.conversation_id, self.user_id)
        messages = self.message_log.history(
            db, data.conversation_id, data.limit, data.before_sequence_id
        )
        events = [
            OutboundEvent(
                "messages_history",
                [message_payload(message, viewer_id=self.user_id) for message in messages],
            )
        ]

        pending = self.message_log.undelivered_for(messages, self.user_id)
        for message in self.message_log.mark_delivered(db, pending, self.user_id):
            events.append(
                OutboundEvent("message_delivered", delivered_payload(message), message.sender_id)
            )
        return events
