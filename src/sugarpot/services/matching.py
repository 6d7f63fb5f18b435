"""Relationship actions: swipe, pass, heart request, decline, unmatch.

Each action reads the pair's current record, asks the pure state machine for
the next state and writes the result. Writes are guarded by the unique pair
constraint (for inserts) and the row version (for updates); when another
request wins the race the action is re-decided against the fresh record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from sugarpot.core.errors import (
    ConcurrentModificationError,
    DuplicateRelationshipError,
    NotFoundError,
)
from sugarpot.core.match_state import MatchAction, Transition, decide
from sugarpot.core.settings import settings
from sugarpot.models import Relationship, User
from sugarpot.repositories.relationship_repo import RelationshipRepository

logger = logging.getLogger(__name__)

_RETRYABLE = (DuplicateRelationshipError, ConcurrentModificationError)


@dataclass(frozen=True)
class MatchOutcome:
    """Result of a successful relationship action."""

    relationship: Relationship
    transition: Transition

    @property
    def matched(self) -> bool:
        return self.transition.matched

    @property
    def message(self) -> str:
        return self.transition.message


class MatchService:
    """Apply relationship actions with optimistic retries."""

    def __init__(self, max_retries: int | None = None) -> None:
        self.max_retries = max(1, max_retries or settings.match_max_retries)

    def swipe(
        self,
        db: Session,
        acting_user_id: int,
        target_user_id: int,
        location_id: str | None = None,
    ) -> MatchOutcome:
        """Like ``target_user_id``; completes a match if they liked first."""
        return self._act_on_pair(db, MatchAction.SWIPE, acting_user_id, target_user_id, location_id)

    def pass_user(self, db: Session, acting_user_id: int, target_user_id: int) -> MatchOutcome:
        """Pass on ``target_user_id``, leaving the pair unmatched."""
        return self._act_on_pair(db, MatchAction.PASS, acting_user_id, target_user_id)

    def heart_request(self, db: Session, acting_user_id: int, target_user_id: int) -> MatchOutcome:
        """Send a heart request, or accept one that ``target_user_id`` sent."""
        return self._act_on_pair(db, MatchAction.HEART_REQUEST, acting_user_id, target_user_id)

    def decline_heart(self, db: Session, acting_user_id: int, relationship_id: int) -> MatchOutcome:
        return self._act_on_record(db, MatchAction.DECLINE, acting_user_id, relationship_id)

    def unmatch(self, db: Session, acting_user_id: int, relationship_id: int) -> MatchOutcome:
        return self._act_on_record(db, MatchAction.UNMATCH, acting_user_id, relationship_id)

    def set_meeting_place(
        self,
        db: Session,
        acting_user_id: int,
        relationship_id: int,
        location_id: str,
    ) -> MatchOutcome:
        """Attach a location from the external catalog to a match."""
        return self._act_on_record(
            db, MatchAction.SET_MEETING_PLACE, acting_user_id, relationship_id, location_id
        )

    def _act_on_pair(
        self,
        db: Session,
        action: MatchAction,
        acting_user_id: int,
        target_user_id: int,
        location_id: str | None = None,
    ) -> MatchOutcome:
        if target_user_id != acting_user_id and db.get(User, target_user_id) is None:
            raise NotFoundError("User not found")

        repo = RelationshipRepository(db)
        for attempt in range(1, self.max_retries + 1):
            relationship = repo.find(acting_user_id, target_user_id)
            snapshot = relationship.snapshot() if relationship is not None else None
            transition = decide(snapshot, action, acting_user_id, target_user_id)
            try:
                if relationship is None:
                    relationship = repo.create(
                        user1_id=transition.user1_id,
                        user2_id=transition.user2_id,
                        state=transition.state,
                        initiator_id=transition.initiator_id,
                    )
                else:
                    self._apply(relationship, transition, acting_user_id, location_id)
                    repo.save(relationship)
            except _RETRYABLE as err:
                self._check_retry(err, action, attempt)
                continue
            return self._finish(action, relationship, transition)

        raise AssertionError("unreachable")  # pragma: no cover

    def _act_on_record(
        self,
        db: Session,
        action: MatchAction,
        acting_user_id: int,
        relationship_id: int,
        location_id: str | None = None,
    ) -> MatchOutcome:
        repo = RelationshipRepository(db)
        missing = "Heart request not found" if action is MatchAction.DECLINE else "Match not found"
        for attempt in range(1, self.max_retries + 1):
            relationship = repo.get(relationship_id, missing=missing)
            transition = decide(relationship.snapshot(), action, acting_user_id)
            self._apply(relationship, transition, acting_user_id, location_id)
            try:
                repo.save(relationship)
            except ConcurrentModificationError as err:
                self._check_retry(err, action, attempt)
                continue
            return self._finish(action, relationship, transition)

        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _apply(
        relationship: Relationship,
        transition: Transition,
        acting_user_id: int,
        location_id: str | None,
    ) -> None:
        if (transition.user1_id, transition.user2_id) != (relationship.user1_id, relationship.user2_id):
            relationship.set_pair(transition.user1_id, transition.user2_id)
        relationship.state = transition.state
        relationship.initiator_id = transition.initiator_id
        if transition.attach_meeting_place and location_id is not None:
            relationship.meeting_place_id = location_id
            relationship.place_chosen_by_id = acting_user_id

    def _check_retry(self, err: Exception, action: MatchAction, attempt: int) -> None:
        if attempt >= self.max_retries:
            raise err
        logger.warning(
            "Retrying %s after concurrent write (attempt %d/%d): %s",
            action.value,
            attempt,
            self.max_retries,
            err,
        )

    @staticmethod
    def _finish(action: MatchAction, relationship: Relationship, transition: Transition) -> MatchOutcome:
        logger.info(
            "Relationship %s (%s -> %s): %s by %s, state=%s",
            relationship.id,
            relationship.user1_id,
            relationship.user2_id,
            action.value,
            transition.initiator_id,
            relationship.state.value,
        )
        return MatchOutcome(relationship=relationship, transition=transition)


def get_match_service() -> MatchService:
    """Return a new match service instance."""
    return MatchService()
