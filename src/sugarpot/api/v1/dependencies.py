"""Shared API dependencies for authentication and process-wide services."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from sugarpot.core.errors import AuthenticationError
from sugarpot.core.security import decode_access_token
from sugarpot.db.session import SessionLocal, get_db
from sugarpot.db.time import utcnow
from sugarpot.models import User
from sugarpot.services.matching import MatchService, get_match_service
from sugarpot.services.message_log import MessageLog, get_message_log
from sugarpot.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

# Missing credentials surface as AuthenticationError (401) rather than FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def authenticate(db: Session, token: str | None) -> User:
    """Resolve a bearer token to its user and stamp ``last_seen_at``.

    Raises:
        AuthenticationError: If the token is invalid or the user is unknown.
    """
    user_id = decode_access_token(token)
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")

    user.last_seen_at = utcnow()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        # The stamp is informational and must not block the request.
        logger.warning("Failed to update last_seen_at for user %s: %s", user_id, exc)
        db.rollback()
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token."""
    return authenticate(db, credentials.credentials if credentials else None)


def get_presence_registry(connection: HTTPConnection) -> PresenceRegistry:
    """Return the process-wide presence registry built at startup."""
    registry: PresenceRegistry = connection.app.state.presence
    return registry


def get_session_factory() -> Callable[[], Session]:
    """Return the factory realtime handlers use to open per-event sessions."""
    return SessionLocal


def get_message_log_dep() -> MessageLog:
    return get_message_log()


def get_match_service_dep() -> MatchService:
    return get_match_service()


# Type aliases for common dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
PresenceDep = Annotated[PresenceRegistry, Depends(get_presence_registry)]
SessionFactoryDep = Annotated[Callable[[], Session], Depends(get_session_factory)]
MessageLogDep = Annotated[MessageLog, Depends(get_message_log_dep)]
MatchServiceDep = Annotated[MatchService, Depends(get_match_service_dep)]
