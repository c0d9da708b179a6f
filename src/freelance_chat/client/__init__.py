"""Client library: REST calls, the live channel and conversation state."""

from .api import MessagingApi
from .conversation import ConversationController, SendResult
from .errors import ApiError, ClientError, LiveConnectionError
from .live import LiveConnection
from .settings import ClientSettings
from .timeline import (
    ChatMessage,
    ProposalMessage,
    SystemMessage,
    Timeline,
    TimelineEntry,
    normalize_message,
    proposal_from_application,
)

__all__ = [
    "ApiError",
    "ChatMessage",
    "ClientError",
    "ClientSettings",
    "ConversationController",
    "LiveConnection",
    "LiveConnectionError",
    "MessagingApi",
    "ProposalMessage",
    "SendResult",
    "SystemMessage",
    "Timeline",
    "TimelineEntry",
    "normalize_message",
    "proposal_from_application",
]
