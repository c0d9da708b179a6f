"""Push events to online users through their registered live connection."""

from __future__ import annotations

import logging
from typing import Any

from freelance_chat.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class DeliveryService:
    """Best-effort real-time delivery on top of the presence registry.

    An offline peer is not an error: the event is dropped and the peer sees the
    persisted state on its next fetch.
    """

    def __init__(self, registry: PresenceRegistry) -> None:
        self.registry = registry

    async def push_to_user(self, user_id: str, event: str, payload: Any) -> bool:
        """Emit ``event`` to ``user_id`` if online.

        Returns:
            True if the event was written to the user's connection
        """
        connection = self.registry.lookup(user_id)
        if connection is None:
            logger.debug("User %s offline, %s not pushed", user_id, event)
            return False
        try:
            await connection.send_event(event, payload)
        except Exception as exc:
            logger.warning("Failed to push %s to user %s: %s", event, user_id, exc)
            return False
        return True

    async def broadcast(self, event: str, payload: Any, exclude: str | None = None) -> int:
        """Emit ``event`` to every online user except ``exclude``.

        Returns:
            Number of connections the event was written to
        """
        sent = 0
        for connection in self.registry.connections():
            if connection.user_id == exclude:
                continue
            try:
                await connection.send_event(event, payload)
                sent += 1
            except Exception as exc:
                logger.warning(
                    "Broadcast of %s failed for user %s: %s", event, connection.user_id, exc
                )
        return sent
