"""Identifier generation for persisted records."""

from uuid import uuid4


def new_id() -> str:
    """Return a new opaque 32-character identifier."""
    return uuid4().hex
