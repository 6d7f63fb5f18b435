# mypy: ignore-errors
"""Tests for relationship persistence guarantees."""

import pytest

from sugarpot.core.errors import ConcurrentModificationError, DuplicateRelationshipError, NotFoundError
from sugarpot.core.match_state import RelationshipState
from sugarpot.models import Relationship, User
from sugarpot.repositories.relationship_repo import RelationshipRepository


def test_find_is_direction_independent(db_session, alice, bob):
    """Either ordering of the pair resolves to the same record."""
    repo = RelationshipRepository(db_session)
    created = repo.create(
        user1_id=alice.id, user2_id=bob.id, state=RelationshipState.PENDING, initiator_id=alice.id
    )
    assert repo.find(alice.id, bob.id).id == created.id
    assert repo.find(bob.id, alice.id).id == created.id
    assert created.version == 1


def test_second_record_for_pair_rejected(db_session, alice, bob):
    """The reverse direction of an existing pair cannot be inserted."""
    repo = RelationshipRepository(db_session)
    repo.create(
        user1_id=alice.id, user2_id=bob.id, state=RelationshipState.PENDING, initiator_id=alice.id
    )
    with pytest.raises(DuplicateRelationshipError):
        repo.create(
            user1_id=bob.id, user2_id=alice.id, state=RelationshipState.PENDING, initiator_id=bob.id
        )
    assert db_session.query(Relationship).count() == 1


def test_get_missing(db_session):
    with pytest.raises(NotFoundError) as exc_info:
        RelationshipRepository(db_session).get(999, missing="Heart request not found")
    assert exc_info.value.message == "Heart request not found"


def test_save_bumps_version(db_session, matched_pair):
    repo = RelationshipRepository(db_session)
    matched_pair.state = RelationshipState.UNMATCHED
    repo.save(matched_pair)
    assert matched_pair.version == 2


def test_stale_update_rejected(file_session_factory):
    """A write based on an outdated read fails instead of overwriting."""
    with file_session_factory() as setup:
        first, second = User(display_name="A"), User(display_name="B")
        setup.add_all([first, second])
        setup.commit()
        relationship = RelationshipRepository(setup).create(
            user1_id=first.id,
            user2_id=second.id,
            state=RelationshipState.PENDING,
            initiator_id=first.id,
        )
        relationship_id = relationship.id

    with file_session_factory() as winner, file_session_factory() as loser:
        winner_copy = winner.get(Relationship, relationship_id)
        loser_copy = loser.get(Relationship, relationship_id)

        winner_copy.state = RelationshipState.MATCHED
        RelationshipRepository(winner).save(winner_copy)

        loser_copy.state = RelationshipState.UNMATCHED
        with pytest.raises(ConcurrentModificationError):
            RelationshipRepository(loser).save(loser_copy)

    with file_session_factory() as check:
        assert check.get(Relationship, relationship_id).state is RelationshipState.MATCHED


def test_received_hearts_page(db_session, make_user, make_relationship, alice, bob, carol):
    """Only heart requests addressed to the user are listed and counted."""
    make_relationship(bob, alice, RelationshipState.NUDGE_SENT)
    make_relationship(carol, alice, RelationshipState.NUDGE_SENT)
    make_relationship(alice, make_user("Dave"), RelationshipState.NUDGE_SENT)

    rows, total = RelationshipRepository(db_session).list_received_hearts(alice.id, page=1, limit=1)
    assert total == 2
    assert len(rows) == 1

    rows, _ = RelationshipRepository(db_session).list_received_hearts(alice.id, page=3, limit=1)
    assert rows == []


def test_list_matched_for_either_side(db_session, make_relationship, alice, bob, carol):
    make_relationship(alice, bob, RelationshipState.MATCHED)
    make_relationship(carol, alice, RelationshipState.MATCHED)
    make_relationship(bob, carol, RelationshipState.MATCHED)

    matched = RelationshipRepository(db_session).list_matched_for(alice.id)
    assert {rel.other_party(alice.id) for rel in matched} == {bob.id, carol.id}
