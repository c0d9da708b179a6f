# src/freelance_chat/api/v1/endpoints/messages.py
"""Message endpoints for the messaging API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from freelance_chat.core.errors import NotFoundError
from freelance_chat.models import User
from freelance_chat.schemas.message import (
    ConversationSummaryResponse,
    MessageCreate,
    serialize_message,
)

from ..dependencies import CurrentUserDep, MessageStoreDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Send a message and push it to the receiver if they are online."""
    message = await store.send(
        current_user,
        message_data.receiver_id,
        message_data.content,
        job_id=message_data.job_id,
        is_system=message_data.is_system,
    )
    return {
        "success": True,
        "message": "Message sent successfully",
        "data": serialize_message(message),
    }


@router.get("/conversations")
async def get_all_conversations(
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Get one summary per conversation partner of the current user."""
    summaries = store.list_all_conversations_for(current_user)
    conversations = [
        ConversationSummaryResponse.model_validate(summary).model_dump(by_alias=True, mode="json")
        for summary in summaries
    ]
    return {"success": True, "count": len(conversations), "conversations": conversations}


@router.get("/unread/count")
async def get_unread_count(
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Get the number of unread messages addressed to the current user."""
    return {"success": True, "unreadCount": store.unread_count(current_user)}


@router.get("/conversation/{user_id}")
async def get_conversation(
    user_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
    db: SessionDep,
) -> dict[str, Any]:
    """Get the full history with another user, oldest first."""
    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")

    messages = store.list_conversation(current_user.id, user_id)
    return {
        "success": True,
        "count": len(messages),
        "messages": [serialize_message(message) for message in messages],
    }


@router.get("/job/{job_id}")
async def get_job_messages(
    job_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Get the current user's messages about one job, oldest first."""
    messages = store.list_job_messages(current_user, job_id)
    return {
        "success": True,
        "count": len(messages),
        "messages": [serialize_message(message) for message in messages],
    }


@router.put("/read/user/{user_id}")
async def mark_all_as_read(
    user_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Mark every message from ``user_id`` to the current user as read."""
    modified = await store.mark_all_read(user_id, current_user)
    return {
        "success": True,
        "message": f"{modified} messages marked as read",
        "modifiedCount": modified,
    }


@router.put("/read/{message_id}")
async def mark_as_read(
    message_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Mark a message addressed to the current user as read."""
    await store.mark_read(message_id, current_user)
    return {"success": True, "message": "Message marked as read"}


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> dict[str, Any]:
    """Delete a message sent by the current user."""
    await store.delete(message_id, current_user)
    return {"success": True, "message": "Message deleted successfully"}
