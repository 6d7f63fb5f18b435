"""Outbound realtime events and the step that pushes them to connections.

Handlers never write to sockets directly. They return ``OutboundEvent``
values after their store writes have committed, and ``EventDispatcher``
routes each one either back to the originating connection or to the target
user's registered connection. Pushing is best effort: an offline user simply
misses the event and recovers it from message history.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from fastapi import WebSocket, WebSocketDisconnect

from sugarpot.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

__all__ = [
    "ConnectionHandle",
    "EventDispatcher",
    "OutboundEvent",
    "WebSocketConnection",
]

# Errors raised when pushing to a connection that has already gone away.
SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


@dataclass(frozen=True)
class OutboundEvent:
    """A named event for one recipient.

    ``user_id`` of ``None`` addresses the connection the request came from.
    """

    name: str
    payload: Any
    user_id: int | None = None


class ConnectionHandle(Protocol):
    """Anything that can push a named event to one live client."""

    user_id: int
    connection_id: str

    async def send(self, event: str, payload: Any) -> None: ...


class WebSocketConnection:
    """``ConnectionHandle`` backed by a Starlette websocket."""

    def __init__(self, websocket: WebSocket, user_id: int) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self.connection_id = uuid.uuid4().hex

    async def send(self, event: str, payload: Any) -> None:
        await self.websocket.send_json({"event": event, "data": payload})

    def __repr__(self) -> str:
        return f"WebSocketConnection(user_id={self.user_id}, id={self.connection_id})"


class EventDispatcher:
    """Route outbound events through the presence registry."""

    def __init__(self, registry: PresenceRegistry) -> None:
        self.registry = registry

    async def dispatch(
        self,
        events: Iterable[OutboundEvent],
        origin: ConnectionHandle | None = None,
    ) -> int:
        """Push ``events`` in order and return how many reached a connection."""
        delivered = 0
        for event in events:
            target = origin if event.user_id is None else self.registry.lookup(event.user_id)
            if target is None:
                logger.debug("Deferred %s for offline user %s", event.name, event.user_id)
                continue
            try:
                await target.send(event.name, event.payload)
            except SEND_ERRORS as exc:
                logger.warning(
                    "Dropping %s for %r: connection unavailable (%s)", event.name, target, exc
                )
                self.registry.unregister(target.user_id, target)
                continue
            delivered += 1
        return delivered
