"""Errors raised by the messaging client."""

from __future__ import annotations


class ClientError(RuntimeError):
    """Base class for client-side failures."""


class ApiError(ClientError):
    """A REST call failed.

    ``status_code`` is None when the request never got a response
    (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class LiveConnectionError(ClientError):
    """The live channel could not be opened or is not connected.

    ``status_code`` is the HTTP status of a refused handshake (403 when the
    server rejected the credential), or None when the server was unreachable.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rejected(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500
