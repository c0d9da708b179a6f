"""Message-related Pydantic schemas.

Wire payloads use camelCase keys (``senderId``, ``createdAt``) so that REST
responses and live events share one vocabulary with browser clients.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from freelance_chat.db.time import as_utc
from freelance_chat.models import Message, User

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageCreate(BaseModel):
    """Schema for sending a new message.

    ``receiverId`` and ``content`` are optional at the schema level so that the
    message store can report their absence as a 400 rather than a 422.
    """

    receiver_id: str | None = Field(None, description="Recipient user id")
    content: str | None = Field(None, description="Message text")
    job_id: str | None = Field(None, description="Optional job the conversation is about")
    is_system: bool = Field(False, description="True for status-transition notices")

    model_config = _CAMEL


class UserSummary(BaseModel):
    """Public fields of a conversation participant."""

    id: str
    name: str
    role: str

    model_config = _CAMEL


class MessageResponse(BaseModel):
    """Schema for message information returned by the API."""

    id: str
    sender_id: str
    receiver_id: str
    job_id: str | None
    content: str
    read: bool
    is_system: bool
    created_at: datetime
    sender: UserSummary | None = None
    receiver: UserSummary | None = None

    model_config = _CAMEL

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        """Render timestamps as ISO-8601 in UTC."""
        return as_utc(value).isoformat()


class ConversationSummaryResponse(BaseModel):
    """One entry of the caller's conversation list."""

    partner: UserSummary
    last_message: MessageResponse
    unread_count: int

    model_config = _CAMEL


def serialize_message(message: Message) -> dict[str, Any]:
    """Serialize a Message instance into API payload form."""
    return MessageResponse.model_validate(message).model_dump(by_alias=True, mode="json")


def live_message_payload(message: Message, sender: User) -> dict[str, Any]:
    """Build the ``receive_message`` event body for a persisted message."""
    return {
        "messageId": message.id,
        "senderId": message.sender_id,
        "senderName": sender.name,
        "receiverId": message.receiver_id,
        "content": message.content,
        "jobId": message.job_id,
        "isSystem": message.is_system,
        "timestamp": as_utc(message.created_at).isoformat(),
    }
