"""Domain error taxonomy shared by the HTTP and realtime surfaces.

Every error carries a stable machine-readable ``code`` and the HTTP status
used when it escapes a request handler. Realtime handlers render the same
errors as ``error`` events on the originating connection.
"""

from __future__ import annotations

__all__ = [
    "SugarpotError",
    "NotFoundError",
    "NotAuthorizedError",
    "InvalidTransitionError",
    "AlreadySwipedError",
    "AlreadyNudgedError",
    "AlreadyMatchedError",
    "DuplicateRelationshipError",
    "ConcurrentModificationError",
    "AuthenticationError",
    "InvalidParticipantsError",
]


class SugarpotError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        """Return the wire representation of this error."""
        return {"message": self.message, "code": self.code}


class NotFoundError(SugarpotError):
    """Unknown relationship, conversation or user."""

    status_code = 404
    code = "not_found"
    default_message = "Not found"


class NotAuthorizedError(SugarpotError):
    """The acting user is not a party of the relationship."""

    status_code = 403
    code = "not_authorized"
    default_message = "Not authorized"


class InvalidTransitionError(SugarpotError):
    """The action is not legal in the relationship's current state."""

    status_code = 400
    code = "invalid_transition"
    default_message = "Action not allowed in the current state"


class AlreadySwipedError(InvalidTransitionError):
    code = "already_swiped"
    default_message = "Already swiped on this user"


class AlreadyNudgedError(InvalidTransitionError):
    code = "already_nudged"
    default_message = "You already sent a heart request to this user"


class AlreadyMatchedError(InvalidTransitionError):
    code = "already_matched"
    default_message = "You are already matched with this user"


class DuplicateRelationshipError(SugarpotError):
    """A concurrent writer created the record for the same user pair.

    Callers re-fetch the pair and retry the action as an update.
    """

    status_code = 409
    code = "duplicate_relationship"
    default_message = "Relationship already exists for this pair"


class ConcurrentModificationError(SugarpotError):
    """The relationship changed between read and write; safe to retry."""

    status_code = 409
    code = "concurrent_modification"
    default_message = "Relationship was modified concurrently, retry"


class AuthenticationError(SugarpotError):
    """Missing or invalid credential on a connection or request."""

    status_code = 401
    code = "authentication_error"
    default_message = "Could not validate credentials"


class InvalidParticipantsError(SugarpotError):
    """Sender and receiver are not the two parties of the conversation."""

    status_code = 400
    code = "invalid_participants"
    default_message = "Invalid receiver"
