"""Domain errors raised by the messaging core.

Each error carries the HTTP status it maps to; the API layer renders any
``ChatError`` as ``{"message": ...}`` JSON with that status, and the live
gateway turns it into an ``error`` event for the offending connection.

A real-time push to an offline peer is deliberately *not* an error: the
delivery service reports it by returning ``False``.
"""

from __future__ import annotations

from fastapi import status


class ChatError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ChatError):
    """Missing, invalid or expired bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ChatError):
    """The acting user has no rights over the target message."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ChatError):
    """A referenced message, user or job does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
