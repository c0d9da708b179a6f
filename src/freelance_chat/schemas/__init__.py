# src/freelance_chat/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .message import (
    ConversationSummaryResponse,
    MessageCreate,
    MessageResponse,
    UserSummary,
    live_message_payload,
    serialize_message,
)

__all__ = [
    "ConversationSummaryResponse",
    "MessageCreate", "MessageResponse",
    "UserSummary",
    "live_message_payload",
    "serialize_message",
]
