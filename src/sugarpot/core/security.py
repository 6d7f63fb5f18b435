"""Bearer credential helpers built on JWT.

Token issuance belongs to the external identity service; ``create_access_token``
exists so tooling and tests can mint credentials the same way it does.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from sugarpot.core.errors import AuthenticationError
from sugarpot.core.settings import settings


def create_access_token(user_id: int) -> str:
    """Create a JWT access token whose subject is the user id."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str | None) -> int:
    """Return the user id carried by a bearer token.

    Raises:
        AuthenticationError: If the token is absent, malformed, expired or
            carries no usable subject.
    """
    if not token:
        raise AuthenticationError("No token provided")
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise AuthenticationError("Invalid token") from err

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise AuthenticationError("Invalid token subject") from err
