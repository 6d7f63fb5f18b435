# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sugarpot.api.v1.dependencies import get_session_factory
from sugarpot.core.match_state import RelationshipState
from sugarpot.core.security import create_access_token
from sugarpot.db.session import Base
from sugarpot.db.session import get_db as app_get_session
from sugarpot.main import app as fastapi_app
from sugarpot.models import Relationship, User

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="session")
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Session used by tests to seed rows and inspect results.

    Application code commits for real, so call ``expire_all`` before reading
    rows the app may have changed.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(
    app: FastAPI,
    engine: Engine,
    session_factory: sessionmaker[Session],
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_session_factory, None)

        # Every test starts from empty tables even though the app commits.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def file_session_factory(tmp_path: Path) -> Iterator[sessionmaker[Session]]:
    """Sessions on a file-backed database for tests that write from threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[[str], User]:
    """Return a factory that persists a user with the given display name."""

    def _make_user(display_name: str) -> User:
        user = User(display_name=display_name)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[[str], User]) -> User:
    return make_user("Alice")


@pytest.fixture()
def bob(make_user: Callable[[str], User]) -> User:
    return make_user("Bob")


@pytest.fixture()
def carol(make_user: Callable[[str], User]) -> User:
    return make_user("Carol")


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    """Return authorization headers for Alice."""
    return _auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    """Return authorization headers for Bob."""
    return _auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return _auth_headers(carol)


@pytest.fixture()
def make_relationship(db_session: Session) -> Callable[..., Relationship]:
    """Return a factory that persists a relationship in a given state."""

    def _make_relationship(
        user1: User,
        user2: User,
        state: RelationshipState,
        initiator: User | None = None,
    ) -> Relationship:
        relationship = Relationship(state=state, initiator_id=(initiator or user1).id)
        relationship.set_pair(user1.id, user2.id)
        db_session.add(relationship)
        db_session.commit()
        return relationship

    return _make_relationship


@pytest.fixture()
def matched_pair(make_relationship, alice: User, bob: User) -> Relationship:
    """Alice and Bob matched; the record doubles as their conversation."""
    return make_relationship(alice, bob, RelationshipState.MATCHED, initiator=bob)
