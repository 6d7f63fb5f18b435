"""Per-pair relationship record driven by the match state machine."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sugarpot.core.match_state import RelationshipSnapshot, RelationshipState
from sugarpot.db.session import Base
from sugarpot.db.time import utcnow


class Relationship(Base):
    """One row per unordered pair of users.

    ``user1_id``/``user2_id`` keep the direction of the latest directional
    action, while ``user_low_id``/``user_high_id`` hold the same pair in
    canonical order so the unique constraint covers both directions.
    ``version`` is checked on every UPDATE (compare-and-swap).
    """

    __tablename__ = "relationship"
    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_relationship_pair"),
        Index("ix_relationship_user2_state", "user2_id", "state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    user_low_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_high_id: Mapped[int] = mapped_column(Integer, nullable=False)

    state: Mapped[RelationshipState] = mapped_column(
        Enum(
            RelationshipState,
            name="relationship_state",
            native_enum=False,
            values_callable=lambda states: [state.value for state in states],
        ),
        nullable=False,
    )
    initiator_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)

    # Opaque reference into the external location catalog.
    meeting_place_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    place_chosen_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def set_pair(self, user1_id: int, user2_id: int) -> None:
        """Store the directional pair along with its canonical ordering."""
        self.user1_id = user1_id
        self.user2_id = user2_id
        self.user_low_id, self.user_high_id = sorted((user1_id, user2_id))

    def has_party(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_party(self, user_id: int) -> int:
        """Return the counterpart of ``user_id`` in this pair."""
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def snapshot(self) -> RelationshipSnapshot:
        return RelationshipSnapshot(
            user1_id=self.user1_id,
            user2_id=self.user2_id,
            state=self.state,
            initiator_id=self.initiator_id,
        )
