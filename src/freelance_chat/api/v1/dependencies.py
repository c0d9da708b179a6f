"""Shared API dependencies for authentication and messaging services."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from freelance_chat.core.security import authenticate_token
from freelance_chat.db.session import get_db
from freelance_chat.models import User
from freelance_chat.realtime.delivery import DeliveryService
from freelance_chat.services.message_store import MessageStore

# HTTP Bearer scheme for JWT authentication; a missing header is reported by
# authenticate_token as a 401 instead of HTTPBearer's default 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            no longer exists
    """
    token = credentials.credentials if credentials is not None else None
    return authenticate_token(db, token)


def get_delivery_service(request: Request) -> DeliveryService:
    """Return the delivery service created at application startup."""
    return request.app.state.delivery


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
DeliveryDep = Annotated[DeliveryService, Depends(get_delivery_service)]


def get_message_store(db: SessionDep, delivery: DeliveryDep) -> MessageStore:
    """Build a message store bound to the request's session."""
    return MessageStore(db, delivery)


MessageStoreDep = Annotated[MessageStore, Depends(get_message_store)]
