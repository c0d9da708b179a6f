# src/freelance_chat/api/v1/endpoints/live.py
"""Websocket endpoint for the live channel.

## Authentication
Pass the same JWT used for REST calls, either as a query parameter
(``/ws?token=<jwt>``) or as an ``Authorization: Bearer <jwt>`` header. A
missing or invalid credential closes the handshake before it is accepted,
with ``WS_AUTH_CLOSE_CODE`` (4001). Over uvicorn a close before accept is sent
as an HTTP 403 handshake response, so network clients see a refused handshake
rather than the close code; in-process ASGI clients such as Starlette's
``TestClient`` see the 4001 close.

## Frames
Both directions exchange JSON objects ``{"event": "<name>", "data": {...}}``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket

from freelance_chat.core.errors import AuthenticationError
from freelance_chat.core.security import authenticate_token
from freelance_chat.core.settings import settings
from freelance_chat.realtime.gateway import Gateway

from ..dependencies import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


def _credential(websocket: WebSocket, token: str | None) -> str | None:
    if token:
        return token
    scheme, _, value = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


@router.websocket("/ws")
async def live_channel(
    websocket: WebSocket,
    db: SessionDep,
    token: str | None = Query(None, description="JWT access token"),
) -> None:
    """Authenticate, register presence, then route events until disconnect."""
    try:
        user = authenticate_token(db, _credential(websocket, token))
    except AuthenticationError as exc:
        logger.info("Rejected live connection: %s", exc.message)
        await websocket.close(code=settings.ws_auth_close_code, reason=exc.message)
        return
    finally:
        # The session is only needed for the handshake; return its connection
        # to the pool instead of holding it for the life of the socket. The
        # user stays usable detached since its columns are already loaded.
        db.close()

    gateway: Gateway = websocket.app.state.gateway
    connection = await gateway.connect(websocket, user)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect" or connection.closed:
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await gateway.dispatch(connection, raw)
    finally:
        await gateway.disconnect(connection)
