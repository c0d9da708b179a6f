"""Client side of the live channel.

A ``LiveConnection`` is owned by whoever opens it (normally a
``ConversationController``) and must be closed by the same owner.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from freelance_chat.client.errors import LiveConnectionError
from freelance_chat.client.settings import ClientSettings

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]

# Pseudo-events dispatched locally, never sent by the server.
CONNECT_EVENT = "connect"
DISCONNECT_EVENT = "disconnect"


class LiveConnection:
    """Authenticated websocket speaking ``{"event", "data"}`` frames."""

    def __init__(
        self,
        token: str,
        url: str | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.url = url or self.settings.ws_url
        self.token = token
        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``; handlers may be sync or async."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler | None = None) -> None:
        """Remove one handler, or every handler for ``event``."""
        if handler is None:
            self._handlers.pop(event, None)
        elif handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    async def connect(self) -> None:
        """Open the websocket; the credential travels in the handshake."""
        if self.connected:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                headers={"Authorization": f"Bearer {self.token}"},
                heartbeat=self.settings.heartbeat_seconds,
            )
        except aiohttp.WSServerHandshakeError as exc:
            raise LiveConnectionError(
                f"Live channel refused the connection: {exc.status}", exc.status
            ) from exc
        except aiohttp.ClientError as exc:
            raise LiveConnectionError(f"Live channel unreachable: {exc}") from exc

        logger.info("Live channel connected to %s", self.url)
        self._reader = asyncio.create_task(self._read_loop())
        await self._dispatch(CONNECT_EVENT, None)

    async def emit(self, event: str, data: Any) -> bool:
        """Send one event; returns False when not connected."""
        if self._ws is None or self._ws.closed:
            logger.debug("Dropping %s, live channel not connected", event)
            return False
        await self._ws.send_json({"event": event, "data": data})
        return True

    async def close(self) -> None:
        """Close the websocket, stop the reader and release the HTTP session."""
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _read_loop(self) -> None:
        assert self._ws is not None
        try:
            async for message in self._ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    try:
                        frame = message.json()
                    except ValueError:
                        logger.warning("Ignoring malformed live frame")
                        continue
                    if isinstance(frame, dict) and isinstance(frame.get("event"), str):
                        await self._dispatch(frame["event"], frame.get("data"))
                elif message.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("Live channel error: %s", self._ws.exception())
                    break
        finally:
            logger.info("Live channel closed")
            await self._dispatch(DISCONNECT_EVENT, None)

    async def _dispatch(self, event: str, data: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event)
