"""Bearer credential helpers shared by the REST API and the live gateway."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from freelance_chat.core.errors import AuthenticationError
from freelance_chat.core.settings import settings
from freelance_chat.models import User


def create_access_token(user_id: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token whose subject is the user id."""
    to_encode: dict[str, object] = {"sub": user_id}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str | None) -> str:
    """Return the user id carried by ``token``.

    Raises:
        AuthenticationError: If the token is absent, malformed, expired or has
            no subject.
    """
    if not token:
        raise AuthenticationError("Not authorized, no token")
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise AuthenticationError("Not authorized, invalid token") from err

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise AuthenticationError("Not authorized, invalid token")
    return subject


def authenticate_token(db: Session, token: str | None) -> User:
    """Resolve a bearer credential to an existing user.

    Args:
        db: Database session
        token: Raw JWT (without the ``Bearer`` prefix)

    Returns:
        The authenticated user

    Raises:
        AuthenticationError: If the token is invalid or the user no longer exists
    """
    user_id = decode_access_token(token)
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user
