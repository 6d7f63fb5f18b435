"""Relationship-related Pydantic schemas."""
from __future__ import annotations

import math
from datetime import datetime

from pydantic import Field

from sugarpot.core.match_state import RelationshipState
from sugarpot.models import Relationship, User

from .common import CamelModel, Pagination


class TargetUserRequest(CamelModel):
    """Body for actions addressed at another user."""

    target_user_id: int = Field(..., description="User the action is directed at")


class SwipeRequest(TargetUserRequest):
    """Body for a right swipe, optionally proposing a meeting place."""

    location_id: str | None = Field(
        None, description="Location catalog reference stored if the swipe completes a match"
    )


class MeetingPlaceRequest(CamelModel):
    location_id: str = Field(..., min_length=1, description="Location catalog reference")


class RelationshipResponse(CamelModel):
    """Relationship record as returned to either party."""

    id: int
    user1_id: int
    user2_id: int
    status: RelationshipState
    initiator_id: int
    meeting_place_id: str | None
    place_chosen_by_id: int | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_relationship(cls, relationship: Relationship) -> "RelationshipResponse":
        return cls(
            id=relationship.id,
            user1_id=relationship.user1_id,
            user2_id=relationship.user2_id,
            status=relationship.state,
            initiator_id=relationship.initiator_id,
            meeting_place_id=relationship.meeting_place_id,
            place_chosen_by_id=relationship.place_chosen_by_id,
            created_at=relationship.created_at,
            updated_at=relationship.updated_at,
        )


class MatchActionResponse(CamelModel):
    """Outcome of swipe, pass, heart request, decline or unmatch."""

    message: str
    match: bool = False
    relationship: RelationshipResponse


class UserSummary(CamelModel):
    id: int
    display_name: str | None = None
    last_seen_at: datetime | None = None


class MatchSummary(CamelModel):
    """A matched relationship seen from one party, showing the other user."""

    match_id: int
    user: UserSummary | None
    meeting_place_id: str | None = None
    place_chosen_by_id: int | None = None
    created_at: datetime


class HeartRequestSummary(CamelModel):
    match_id: int
    user: UserSummary | None
    created_at: datetime


class ReceivedHeartsResponse(CamelModel):
    requests: list[HeartRequestSummary]
    pagination: Pagination

    @classmethod
    def build(
        cls,
        rows: list[tuple[Relationship, User | None]],
        *,
        page: int,
        limit: int,
        total: int,
    ) -> "ReceivedHeartsResponse":
        return cls(
            requests=[
                HeartRequestSummary(
                    match_id=relationship.id,
                    user=UserSummary.model_validate(sender) if sender is not None else None,
                    created_at=relationship.created_at,
                )
                for relationship, sender in rows
            ],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
                has_more=page * limit < total,
            ),
        )
