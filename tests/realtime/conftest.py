# tests/realtime/conftest.py
from __future__ import annotations

from typing import Any

import pytest

from freelance_chat.realtime import DeliveryService, Gateway, LiveConnection, PresenceRegistry


class FakeWebSocket:
    """Records frames written by the server side of a live connection."""

    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.fail = fail
        self.close_code: int | None = None
        self.sent: list[dict[str, Any]] = []

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.close_code = code

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        return [frame for frame in self.sent if name is None or frame["event"] == name]

    def last(self, name: str) -> Any:
        return self.events(name)[-1]["data"]


@pytest.fixture()
def registry() -> PresenceRegistry:
    return PresenceRegistry()


@pytest.fixture()
def delivery(registry: PresenceRegistry) -> DeliveryService:
    return DeliveryService(registry)


@pytest.fixture()
def gateway(registry: PresenceRegistry, delivery: DeliveryService) -> Gateway:
    return Gateway(registry, delivery)


@pytest.fixture()
def make_connection():
    def _make(user_id: str, name: str = "User", fail: bool = False) -> LiveConnection:
        return LiveConnection(websocket=FakeWebSocket(fail=fail), user_id=user_id, user_name=name)

    return _make


@pytest.fixture()
def fake_socket() -> type[FakeWebSocket]:
    return FakeWebSocket
