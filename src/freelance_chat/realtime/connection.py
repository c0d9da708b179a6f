"""Server-side handle for one authenticated websocket."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket


@dataclass(eq=False)
class LiveConnection:
    """An accepted websocket bound to a user identity.

    Frames are JSON objects of the form ``{"event": name, "data": payload}``.
    """

    websocket: WebSocket
    user_id: str
    user_name: str
    rooms: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Set once a newer connection for the same user has replaced this one.
    closed: bool = False

    async def send_event(self, event: str, data: Any) -> None:
        """Emit one event frame on this connection."""
        await self.websocket.send_json({"event": event, "data": data})
        self.last_activity = datetime.now(timezone.utc)
