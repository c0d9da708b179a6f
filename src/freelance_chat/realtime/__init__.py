"""Live channel: presence, delivery and the websocket gateway."""

from .connection import LiveConnection
from .delivery import DeliveryService
from .gateway import Gateway, conversation_room
from .presence import PresenceRegistry

__all__ = [
    "DeliveryService",
    "Gateway",
    "LiveConnection",
    "PresenceRegistry",
    "conversation_room",
]
