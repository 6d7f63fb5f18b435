"""REST access to conversation history."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from sugarpot.schemas.message import message_payload

from ..dependencies import CurrentUserDep, MessageLogDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{conversation_id}")
def get_history(
    conversation_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    message_log: MessageLogDep,
    limit: int | None = Query(None, ge=1),
    before_sequence_id: int | None = Query(None, alias="beforeSequenceId", ge=1),
) -> list[dict[str, Any]]:
    """Return a window of the conversation in ascending sequence order."""
    message_log.get_conversation(db, conversation_id, current_user.id)
    messages = message_log.history(db, conversation_id, limit, before_sequence_id)
    return [message_payload(message, viewer_id=current_user.id) for message in messages]
