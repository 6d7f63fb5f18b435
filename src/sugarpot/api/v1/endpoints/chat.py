"""Realtime chat websocket endpoint."""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from sugarpot.core.errors import AuthenticationError
from sugarpot.schemas.message import ClientEvent
from sugarpot.services.chat_session import ChatSession
from sugarpot.services.delivery import WebSocketConnection

from ..dependencies import MessageLogDep, PresenceDep, SessionFactoryDep, authenticate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _bearer_from_header(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials:
        return None
    return credentials.strip()


async def _read_frame(websocket: WebSocket) -> str | None:
    """Return the next text frame, or ``None`` for a binary one."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    return message.get("text")


def _parse_frame(raw: str) -> ClientEvent | None:
    try:
        return ClientEvent.model_validate_json(raw)
    except ValidationError:
        return None


def _authenticate(session_factory: Callable[[], Session], token: str | None) -> int:
    with session_factory() as db:
        return authenticate(db, token).id


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    registry: PresenceDep,
    session_factory: SessionFactoryDep,
    message_log: MessageLogDep,
    token: str | None = Query(None),
) -> None:
    """Authenticated bidirectional chat channel.

    Frames are JSON objects ``{"event": name, "data": {...}}`` in both
    directions. The token comes from the ``token`` query parameter or an
    ``Authorization: Bearer`` header; without a valid one the handshake is
    refused with close code 1008.
    """
    credential = token or _bearer_from_header(websocket.headers.get("authorization"))
    try:
        user_id = await run_in_threadpool(_authenticate, session_factory, credential)
    except AuthenticationError as exc:
        logger.info("Rejected chat connection: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket, user_id)
    session = ChatSession(
        user_id=user_id,
        connection=connection,
        registry=registry,
        session_factory=session_factory,
        message_log=message_log,
    )
    session.open()
    try:
        while True:
            raw = await _read_frame(websocket)
            frame = _parse_frame(raw) if raw is not None else None
            if frame is None:
                await connection.send(
                    "error", {"message": "Malformed frame", "code": "invalid_payload"}
                )
                continue
            await session.handle(frame.event, frame.data)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Chat connection for user %s failed", user_id)
        raise
    finally:
        session.close()
