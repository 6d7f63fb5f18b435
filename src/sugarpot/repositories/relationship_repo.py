"""Data access helpers for relationship records."""
from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from sugarpot.core.errors import (
    ConcurrentModificationError,
    DuplicateRelationshipError,
    NotFoundError,
)
from sugarpot.core.match_state import RelationshipState
from sugarpot.models import Relationship

__all__ = ["RelationshipRepository"]


class RelationshipRepository:
    """Thin wrapper around database access for relationship entities.

    Writes are atomic with respect to the unique pair: ``create`` reports a
    lost race as ``DuplicateRelationshipError`` and ``save`` reports a stale
    version as ``ConcurrentModificationError``. Both leave the session rolled
    back so the caller can re-fetch and retry.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def find(self, user_a: int, user_b: int) -> Relationship | None:
        """Return the record for the unordered pair, if any."""
        low, high = sorted((user_a, user_b))
        return self.session.execute(
            select(Relationship).where(
                Relationship.user_low_id == low,
                Relationship.user_high_id == high,
            )
        ).scalar_one_or_none()

    def get(self, relationship_id: int, *, missing: str = "Match not found") -> Relationship:
        """Return a relationship by identifier or raise ``NotFoundError``."""
        relationship = self.session.get(Relationship, relationship_id)
        if relationship is None:
            raise NotFoundError(missing)
        return relationship

    def create(
        self,
        *,
        user1_id: int,
        user2_id: int,
        state: RelationshipState,
        initiator_id: int,
    ) -> Relationship:
        """Insert a new relationship and commit it.

        Raises:
            DuplicateRelationshipError: If a record for the pair already exists.
        """
        relationship = Relationship(state=state, initiator_id=initiator_id)
        relationship.set_pair(user1_id, user2_id)
        self.session.add(relationship)
        try:
            self.session.commit()
        except IntegrityError as err:
            self.session.rollback()
            raise DuplicateRelationshipError() from err
        return relationship

    def save(self, relationship: Relationship) -> Relationship:
        """Commit pending changes on ``relationship`` guarded by its version.

        Raises:
            ConcurrentModificationError: If another writer updated the row first.
        """
        self.session.add(relationship)
        try:
            self.session.commit()
        except StaleDataError as err:
            self.session.rollback()
            raise ConcurrentModificationError() from err
        return relationship

    def list_matched_for(self, user_id: int) -> list[Relationship]:
        """Return matched relationships involving ``user_id``, newest first."""
        result = self.session.execute(
            select(Relationship)
            .where(
                or_(Relationship.user1_id == user_id, Relationship.user2_id == user_id),
                Relationship.state == RelationshipState.MATCHED,
            )
            .order_by(Relationship.created_at.desc(), Relationship.id.desc())
        )
        return list(result.scalars())

    def list_received_hearts(
        self, user_id: int, *, page: int, limit: int
    ) -> tuple[list[Relationship], int]:
        """Return one page of outstanding heart requests addressed to ``user_id``.

        Returns:
            The page of relationships and the total number of matching rows.
        """
        criteria = (
            Relationship.user2_id == user_id,
            Relationship.state == RelationshipState.NUDGE_SENT,
        )
        total = self.session.execute(
            select(func.count()).select_from(Relationship).where(*criteria)
        ).scalar_one()
        result = self.session.execute(
            select(Relationship)
            .where(*criteria)
            .order_by(Relationship.created_at.desc(), Relationship.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars()), total
