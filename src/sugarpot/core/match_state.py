"""Pure decision logic for relationship actions.

``decide`` maps the current relationship snapshot (or ``None`` when the pair
has no record yet) plus an action to the next state. It never touches the
database; persistence and retries live in ``sugarpot.services.matching``.

Direction matters: ``user1`` is whoever made the most recent directional
move (swipe or heart request) and ``user2`` its recipient. Only the
recipient can complete a match.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import assert_never

from sugarpot.core.errors import (
    AlreadyMatchedError,
    AlreadyNudgedError,
    AlreadySwipedError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
)

__all__ = [
    "RelationshipState",
    "MatchAction",
    "RelationshipSnapshot",
    "Transition",
    "decide",
]


class RelationshipState(str, Enum):
    """Closed set of relationship states."""

    PENDING = "pending"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    NUDGE_SENT = "nudge_sent"


class MatchAction(str, Enum):
    """Closed set of actions a user can take on a relationship."""

    SWIPE = "swipe"
    PASS = "pass"
    HEART_REQUEST = "heart_request"
    DECLINE = "decline"
    UNMATCH = "unmatch"
    SET_MEETING_PLACE = "set_meeting_place"


@dataclass(frozen=True)
class RelationshipSnapshot:
    """Immutable view of the fields the state machine reads."""

    user1_id: int
    user2_id: int
    state: RelationshipState
    initiator_id: int

    def has_party(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)


@dataclass(frozen=True)
class Transition:
    """Outcome of a legal action.

    Attributes:
        state: State the relationship moves to.
        user1_id: Directional sender after the action.
        user2_id: Directional recipient after the action.
        initiator_id: User who caused this transition.
        message: Human-readable outcome for the caller.
        created: True when no record existed and one must be inserted.
        matched: True when this action completed a match.
        attach_meeting_place: True when a supplied location should be stored.
    """

    state: RelationshipState
    user1_id: int
    user2_id: int
    initiator_id: int
    message: str
    created: bool = False
    matched: bool = False
    attach_meeting_place: bool = False


def decide(
    snapshot: RelationshipSnapshot | None,
    action: MatchAction,
    acting_user_id: int,
    target_user_id: int | None = None,
) -> Transition:
    """Return the transition for ``action`` or raise a typed error.

    Swipe, pass and heart-request are addressed by ``target_user_id``; the
    remaining actions are addressed by an existing relationship and ignore it.
    """
    match action:
        case MatchAction.SWIPE:
            return _swipe(snapshot, acting_user_id, _require_target(acting_user_id, target_user_id))
        case MatchAction.PASS:
            return _pass(snapshot, acting_user_id, _require_target(acting_user_id, target_user_id))
        case MatchAction.HEART_REQUEST:
            return _heart_request(
                snapshot, acting_user_id, _require_target(acting_user_id, target_user_id)
            )
        case MatchAction.DECLINE:
            return _decline(snapshot, acting_user_id)
        case MatchAction.UNMATCH:
            return _unmatch(snapshot, acting_user_id)
        case MatchAction.SET_MEETING_PLACE:
            return _set_meeting_place(snapshot, acting_user_id)
        case _:
            assert_never(action)


def _require_target(acting_user_id: int, target_user_id: int | None) -> int:
    if target_user_id is None:
        raise InvalidTransitionError("Target user ID is required")
    if target_user_id == acting_user_id:
        raise InvalidTransitionError("Cannot act on yourself")
    return target_user_id


def _swipe(snapshot: RelationshipSnapshot | None, acting: int, target: int) -> Transition:
    if snapshot is None:
        return Transition(
            state=RelationshipState.PENDING,
            user1_id=acting,
            user2_id=target,
            initiator_id=acting,
            message="Swiped right",
            created=True,
        )

    match snapshot.state:
        case RelationshipState.PENDING if snapshot.user2_id == acting:
            return Transition(
                state=RelationshipState.MATCHED,
                user1_id=snapshot.user1_id,
                user2_id=snapshot.user2_id,
                initiator_id=acting,
                message="It's a match!",
                matched=True,
                attach_meeting_place=True,
            )
        case RelationshipState.MATCHED:
            raise AlreadyMatchedError()
        case RelationshipState.PENDING | RelationshipState.UNMATCHED | RelationshipState.NUDGE_SENT:
            raise AlreadySwipedError()
        case _:
            assert_never(snapshot.state)


def _pass(snapshot: RelationshipSnapshot | None, acting: int, target: int) -> Transition:
    if snapshot is None:
        return Transition(
            state=RelationshipState.UNMATCHED,
            user1_id=acting,
            user2_id=target,
            initiator_id=acting,
            message="Passed on user",
            created=True,
        )
    return Transition(
        state=RelationshipState.UNMATCHED,
        user1_id=snapshot.user1_id,
        user2_id=snapshot.user2_id,
        initiator_id=acting,
        message="Passed on user",
    )


def _heart_request(snapshot: RelationshipSnapshot | None, acting: int, target: int) -> Transition:
    if snapshot is None:
        return Transition(
            state=RelationshipState.NUDGE_SENT,
            user1_id=acting,
            user2_id=target,
            initiator_id=acting,
            message="Heart request sent!",
            created=True,
        )

    match snapshot.state:
        case RelationshipState.NUDGE_SENT if snapshot.user2_id == acting:
            return Transition(
                state=RelationshipState.MATCHED,
                user1_id=snapshot.user1_id,
                user2_id=snapshot.user2_id,
                initiator_id=acting,
                message="It's a match!",
                matched=True,
            )
        case RelationshipState.NUDGE_SENT:
            raise AlreadyNudgedError()
        case RelationshipState.MATCHED:
            raise AlreadyMatchedError()
        case RelationshipState.PENDING | RelationshipState.UNMATCHED:
            # Re-interest overwrites the stored direction.
            return Transition(
                state=RelationshipState.NUDGE_SENT,
                user1_id=acting,
                user2_id=target,
                initiator_id=acting,
                message="Heart request sent!",
            )
        case _:
            assert_never(snapshot.state)


def _require_party(snapshot: RelationshipSnapshot | None, acting: int, missing: str) -> RelationshipSnapshot:
    if snapshot is None:
        raise NotFoundError(missing)
    if not snapshot.has_party(acting):
        raise NotAuthorizedError()
    return snapshot


def _decline(snapshot: RelationshipSnapshot | None, acting: int) -> Transition:
    snapshot = _require_party(snapshot, acting, "Heart request not found")
    if snapshot.state is not RelationshipState.NUDGE_SENT:
        raise InvalidTransitionError("No pending heart request to decline")
    if snapshot.user2_id != acting:
        raise NotAuthorizedError("Not authorized to decline this request")
    return Transition(
        state=RelationshipState.UNMATCHED,
        user1_id=snapshot.user1_id,
        user2_id=snapshot.user2_id,
        initiator_id=acting,
        message="Heart request declined",
    )


def _unmatch(snapshot: RelationshipSnapshot | None, acting: int) -> Transition:
    snapshot = _require_party(snapshot, acting, "Match not found")
    if snapshot.state not in (RelationshipState.MATCHED, RelationshipState.PENDING):
        raise InvalidTransitionError("Only matched or pending relationships can be unmatched")
    return Transition(
        state=RelationshipState.UNMATCHED,
        user1_id=snapshot.user1_id,
        user2_id=snapshot.user2_id,
        initiator_id=acting,
        message="User unmatched successfully",
    )


def _set_meeting_place(snapshot: RelationshipSnapshot | None, acting: int) -> Transition:
    snapshot = _require_party(snapshot, acting, "Match not found")
    if snapshot.state is not RelationshipState.MATCHED:
        raise InvalidTransitionError("A meeting place can only be set on a match")
    return Transition(
        state=snapshot.state,
        user1_id=snapshot.user1_id,
        user2_id=snapshot.user2_id,
        initiator_id=snapshot.initiator_id,
        message="Meeting place updated",
        attach_meeting_place=True,
    )
