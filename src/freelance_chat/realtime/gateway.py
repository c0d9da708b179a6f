"""Event routing for authenticated live connections.

The gateway never persists anything: the message store is the system of
record and the relay exists only to cut latency for peers that are online.
A message may therefore reach a client twice (relay and later REST fetch);
clients deduplicate by message id.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket

from freelance_chat.core.errors import ChatError, ValidationError
from freelance_chat.db.time import utcnow
from freelance_chat.models import User
from freelance_chat.realtime.connection import LiveConnection
from freelance_chat.realtime.delivery import DeliveryService
from freelance_chat.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)

EventHandler = Callable[[LiveConnection, dict[str, Any]], Awaitable[None]]

# Sent to a socket superseded by a newer connection for the same user.
REPLACED_CLOSE_CODE = 4002


def conversation_room(user_a: str, user_b: str) -> str:
    """Return the room id shared by two participants, independent of order."""
    return "-".join(sorted((user_a, user_b)))


class Gateway:
    """Connection lifecycle, room membership and client event handlers."""

    def __init__(self, registry: PresenceRegistry, delivery: DeliveryService) -> None:
        self.registry = registry
        self.delivery = delivery
        self._rooms: dict[str, set[LiveConnection]] = {}
        self._handlers: dict[str, EventHandler] = {
            "send_message": self._on_send_message,
            "typing_start": self._on_typing_start,
            "typing_stop": self._on_typing_stop,
            "message_read": self._on_message_read,
            "join_conversation": self._on_join_conversation,
            "leave_conversation": self._on_leave_conversation,
        }

    # Lifecycle -----------------------------------------------------------------

    async def connect(self, websocket: WebSocket, user: User) -> LiveConnection:
        """Accept an authenticated websocket and announce the user as online."""
        await websocket.accept()
        connection = LiveConnection(websocket=websocket, user_id=user.id, user_name=user.name)

        previous = self.registry.register(user.id, connection)
        if previous is not None:
            await self._close_replaced(previous)
        await self.delivery.broadcast(
            "user_online",
            {"userId": user.id, "name": user.name},
            exclude=user.id,
        )
        await connection.send_event("online_users", sorted(self.registry.list_online()))
        self.join(connection, user.id)

        logger.info("User %s connected (%d online)", user.id, len(self.registry))
        return connection

    async def _close_replaced(self, connection: LiveConnection) -> None:
        """Retire a connection superseded by a newer one for the same user."""
        connection.closed = True
        for room in list(connection.rooms):
            self.leave(connection, room)
        try:
            await connection.websocket.close(
                code=REPLACED_CLOSE_CODE,
                reason="Replaced by a newer connection",
            )
        except Exception as exc:
            logger.warning(
                "Could not close replaced connection for user %s: %s", connection.user_id, exc
            )
        logger.info("Closed stale live connection for user %s", connection.user_id)

    async def disconnect(self, connection: LiveConnection) -> None:
        """Tear down a connection; announce offline only if it was the current one."""
        for room in list(connection.rooms):
            self.leave(connection, room)

        if self.registry.unregister(connection.user_id, connection):
            await self.delivery.broadcast(
                "user_offline",
                {"userId": connection.user_id, "name": connection.user_name},
                exclude=connection.user_id,
            )
        logger.info("User %s disconnected", connection.user_id)

    # Rooms ---------------------------------------------------------------------

    def join(self, connection: LiveConnection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(connection)
        connection.rooms.add(room)

    def leave(self, connection: LiveConnection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def room_members(self, room: str) -> set[str]:
        """Return the user ids currently joined to ``room``."""
        return {connection.user_id for connection in self._rooms.get(room, ())}

    # Dispatch ------------------------------------------------------------------

    async def dispatch(self, connection: LiveConnection, raw: str) -> None:
        """Route one inbound frame; problems become an ``error`` event."""
        if connection.closed:
            logger.debug("Dropping frame from replaced connection of user %s", connection.user_id)
            return

        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            await self._send_error(connection, "Malformed frame")
            return

        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self._send_error(connection, "Missing event name")
            return

        event = frame["event"]
        handler = self._handlers.get(event)
        if handler is None:
            await self._send_error(connection, f"Unknown event: {event}")
            return

        data = frame.get("data") or {}
        if not isinstance(data, dict):
            await self._send_error(connection, "Event payload must be an object")
            return

        try:
            await handler(connection, data)
        except ChatError as exc:
            await self._send_error(connection, exc.message)
        except Exception:
            logger.exception("Unhandled error in %s handler for user %s", event, connection.user_id)
            await self._send_error(connection, "Internal error")

    async def _send_error(self, connection: LiveConnection, message: str) -> None:
        logger.info("Live event error for user %s: %s", connection.user_id, message)
        await connection.send_event("error", {"message": message})

    # Handlers ------------------------------------------------------------------

    async def _on_send_message(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        receiver_id = data.get("receiverId")
        content = data.get("content")
        if not receiver_id or not isinstance(content, str) or not content.strip():
            raise ValidationError("Missing required fields")
        if receiver_id == connection.user_id:
            raise ValidationError("You cannot send a message to yourself")

        message_id = data.get("messageId") or f"msg_{int(time.time() * 1000)}"
        timestamp = utcnow().isoformat()

        delivered = await self.delivery.push_to_user(
            receiver_id,
            "receive_message",
            {
                "messageId": message_id,
                "senderId": connection.user_id,
                "senderName": connection.user_name,
                "receiverId": receiver_id,
                "content": content,
                "jobId": data.get("jobId"),
                "isSystem": bool(data.get("isSystem", False)),
                "timestamp": timestamp,
            },
        )
        await connection.send_event(
            "message_sent",
            {
                "messageId": message_id,
                "receiverId": receiver_id,
                "timestamp": timestamp,
                "delivered": delivered,
            },
        )

    async def _on_typing_start(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        receiver_id = data.get("receiverId")
        if not receiver_id:
            return
        await self.delivery.push_to_user(
            receiver_id,
            "user_typing",
            {"userId": connection.user_id, "userName": connection.user_name},
        )

    async def _on_typing_stop(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        receiver_id = data.get("receiverId")
        if not receiver_id:
            return
        await self.delivery.push_to_user(
            receiver_id,
            "user_stopped_typing",
            {"userId": connection.user_id},
        )

    async def _on_message_read(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        message_id = data.get("messageId")
        sender_id = data.get("senderId")
        if not message_id or not sender_id:
            return
        await self.delivery.push_to_user(
            sender_id,
            "message_read_receipt",
            {
                "messageId": message_id,
                "readBy": connection.user_id,
                "readByName": connection.user_name,
                "readAt": utcnow().isoformat(),
            },
        )

    async def _on_join_conversation(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        peer_id = data.get("userId")
        if not peer_id:
            return
        room = conversation_room(connection.user_id, peer_id)
        self.join(connection, room)
        logger.info("User %s joined conversation room %s", connection.user_id, room)

    async def _on_leave_conversation(self, connection: LiveConnection, data: dict[str, Any]) -> None:
        peer_id = data.get("userId")
        if not peer_id:
            return
        room = conversation_room(connection.user_id, peer_id)
        self.leave(connection, room)
        logger.info("User %s left conversation room %s", connection.user_id, room)
