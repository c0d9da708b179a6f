"""Process-wide registry of which users currently hold a live connection."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from freelance_chat.realtime.connection import LiveConnection

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Maps a user id to its single active live connection.

    A newer registration for the same user replaces the older one
    (last-connect-wins). All mutations happen on the event loop thread, so no
    locking is needed; ``unregister`` only removes the entry when the caller
    still owns it, which keeps a slow disconnect of a replaced socket from
    evicting the fresh one.
    """

    def __init__(self) -> None:
        self._connections: dict[str, LiveConnection] = {}

    def register(self, user_id: str, connection: LiveConnection) -> LiveConnection | None:
        """Record ``connection`` for ``user_id`` and return the one it replaced."""
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info("Replaced stale live connection for user %s", user_id)
            return previous
        return None

    def unregister(self, user_id: str, connection: LiveConnection | None = None) -> bool:
        """Drop the entry for ``user_id``.

        When ``connection`` is given the entry is only removed if it is still
        the registered one. Returns True if an entry was removed.
        """
        current = self._connections.get(user_id)
        if current is None:
            return False
        if connection is not None and current is not connection:
            return False
        del self._connections[user_id]
        return True

    def lookup(self, user_id: str) -> LiveConnection | None:
        """Return the live connection for ``user_id`` if the user is online."""
        return self._connections.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._connections

    def list_online(self) -> set[str]:
        """Return the ids of every connected user."""
        return set(self._connections)

    def connections(self) -> Iterator[LiveConnection]:
        # Snapshot so callers may await between items while the map changes.
        return iter(list(self._connections.values()))

    def __len__(self) -> int:
        return len(self._connections)
