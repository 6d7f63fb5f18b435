"""Relationship action endpoints: swipe, pass, heart requests, unmatch."""

from __future__ import annotations

from fastapi import APIRouter, Query

from sugarpot.core.settings import settings
from sugarpot.models import User
from sugarpot.repositories.relationship_repo import RelationshipRepository
from sugarpot.schemas.relationship import (
    MatchActionResponse,
    MatchSummary,
    MeetingPlaceRequest,
    ReceivedHeartsResponse,
    RelationshipResponse,
    SwipeRequest,
    TargetUserRequest,
    UserSummary,
)
from sugarpot.services.matching import MatchOutcome

from ..dependencies import CurrentUserDep, MatchServiceDep, SessionDep

router = APIRouter(prefix="/matches", tags=["matches"])


def _action_response(outcome: MatchOutcome) -> MatchActionResponse:
    return MatchActionResponse(
        message=outcome.message,
        match=outcome.matched,
        relationship=RelationshipResponse.from_relationship(outcome.relationship),
    )


@router.post("/swipe", response_model=MatchActionResponse)
def swipe(
    body: SwipeRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> MatchActionResponse:
    """Swipe right on a user; completes the match if they swiped first."""
    outcome = service.swipe(db, current_user.id, body.target_user_id, body.location_id)
    return _action_response(outcome)


@router.post("/pass", response_model=MatchActionResponse)
def pass_user(
    body: TargetUserRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> MatchActionResponse:
    """Swipe left on a user."""
    return _action_response(service.pass_user(db, current_user.id, body.target_user_id))


@router.post("/heart-request", response_model=MatchActionResponse)
def heart_request(
    body: TargetUserRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> MatchActionResponse:
    """Send a heart request, or answer one to form a match."""
    return _action_response(service.heart_request(db, current_user.id, body.target_user_id))


@router.get("/my-matches", response_model=list[MatchSummary])
def my_matches(current_user: CurrentUserDep, db: SessionDep) -> list[MatchSummary]:
    """List the caller's matches, each showing the other user."""
    summaries = []
    for relationship in RelationshipRepository(db).list_matched_for(current_user.id):
        other = db.get(User, relationship.other_party(current_user.id))
        if other is None:
            continue
        summaries.append(
            MatchSummary(
                match_id=relationship.id,
                user=UserSummary.model_validate(other),
                meeting_place_id=relationship.meeting_place_id,
                place_chosen_by_id=relationship.place_chosen_by_id,
                created_at=relationship.created_at,
            )
        )
    return summaries


@router.get("/received-hearts", response_model=ReceivedHeartsResponse)
def received_hearts(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
) -> ReceivedHeartsResponse:
    """Page through heart requests other users sent to the caller."""
    limit = limit or settings.received_hearts_page_size
    relationships, total = RelationshipRepository(db).list_received_hearts(
        current_user.id, page=page, limit=limit
    )
    rows = [(relationship, db.get(User, relationship.user1_id)) for relationship in relationships]
    return ReceivedHeartsResponse.build(rows, page=page, limit=limit, total=total)


@router.post("/{match_id}/decline-heart", response_model=MatchActionResponse)
def decline_heart(
    match_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> MatchActionResponse:
    """Decline a heart request addressed to the caller."""
    return _action_response(service.decline_heart(db, current_user.id, match_id))


@router.put("/{match_id}/location", response_model=RelationshipResponse)
def set_meeting_place(
    match_id: int,
    body: MeetingPlaceRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> RelationshipResponse:
    """Choose where the two parties of a match will meet."""
    outcome = service.set_meeting_place(db, current_user.id, match_id, body.location_id)
    return RelationshipResponse.from_relationship(outcome.relationship)


@router.post("/{match_id}/unmatch", response_model=MatchActionResponse)
def unmatch(
    match_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    service: MatchServiceDep,
) -> MatchActionResponse:
    """End a match or withdraw from a pending swipe."""
    return _action_response(service.unmatch(db, current_user.id, match_id))
