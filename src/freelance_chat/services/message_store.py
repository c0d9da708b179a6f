"""Persistence and read-state rules for messages.

Every successful mutation attempts a real-time push to the counterpart so
that open conversation views update without polling. A peer being offline
is not an error; they see the true state on their next fetch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from freelance_chat.core.errors import AuthorizationError, NotFoundError, ValidationError
from freelance_chat.core.settings import settings
from freelance_chat.db.time import utcnow
from freelance_chat.models import Job, Message, User
from freelance_chat.realtime.delivery import DeliveryService
from freelance_chat.schemas.message import live_message_payload

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass
class ConversationSummary:
    """Latest message and unread count for one conversation partner."""

    partner: User
    last_message: Message
    unread_count: int = 0


class MessageStore:
    """System of record for messages between two users."""

    def __init__(
        self,
        db: Session,
        delivery: DeliveryService | None = None,
        max_length: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db: Database session
            delivery: Optional real-time delivery service; without one, mutations
                are persisted but nobody is notified
            max_length: Maximum message length; defaults to ``MESSAGE_MAX_LENGTH``
        """
        self.db = db
        self.delivery = delivery
        self.max_length = max_length or settings.message_max_length

    async def send(
        self,
        sender: User,
        receiver_id: str | None,
        content: str | None,
        job_id: str | None = None,
        is_system: bool = False,
    ) -> Message:
        """Persist a message and push it to the receiver if online.

        Raises:
            ValidationError: Missing receiver or content, over-long content, or
                a message addressed to the sender
            NotFoundError: The receiver does not exist
        """
        if not receiver_id or content is None or not content.strip():
            raise ValidationError("Receiver and message content are required")
        if len(content) > self.max_length:
            raise ValidationError(
                f"Message content cannot exceed {self.max_length} characters"
            )

        receiver = self.db.get(User, receiver_id)
        if receiver is None:
            raise NotFoundError("Receiver not found")

        if receiver.id == sender.id:
            raise ValidationError("You cannot send a message to yourself")

        if job_id and self.db.get(Job, job_id) is None:
            logger.warning("Job %s not found, storing message anyway", job_id)

        message = Message(
            sender_id=sender.id,
            receiver_id=receiver.id,
            job_id=job_id or None,
            content=content,
            is_system=is_system,
            created_at=utcnow(),
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)

        await self._notify(receiver.id, "receive_message", live_message_payload(message, sender))
        return message

    def list_conversation(
        self,
        user_a: str,
        user_b: str,
        job_id: str | None = None,
    ) -> list[Message]:
        """Return every message between two users, oldest first."""
        query = self.db.query(Message).filter(
            or_(
                (Message.sender_id == user_a) & (Message.receiver_id == user_b),
                (Message.sender_id == user_b) & (Message.receiver_id == user_a),
            )
        )
        if job_id is not None:
            query = query.filter(Message.job_id == job_id)
        return query.order_by(Message.created_at.asc()).all()

    def list_job_messages(self, user: User, job_id: str) -> list[Message]:
        """Return messages about ``job_id`` that involve ``user``, oldest first.

        A job that no longer exists yields an empty history rather than an error.
        """
        if self.db.get(Job, job_id) is None:
            logger.warning("Job %s not found, returning empty messages", job_id)
            return []

        return (
            self.db.query(Message)
            .filter(
                Message.job_id == job_id,
                or_(Message.sender_id == user.id, Message.receiver_id == user.id),
            )
            .order_by(Message.created_at.asc())
            .all()
        )

    def list_all_conversations_for(self, user: User) -> list[ConversationSummary]:
        """Group the user's messages by partner, most recently active first."""
        messages = (
            self.db.query(Message)
            .filter(or_(Message.sender_id == user.id, Message.receiver_id == user.id))
            .order_by(Message.created_at.desc())
            .all()
        )

        summaries: dict[str, ConversationSummary] = {}
        for message in messages:
            outgoing = message.sender_id == user.id
            partner_id = message.receiver_id if outgoing else message.sender_id
            summary = summaries.get(partner_id)
            if summary is None:
                partner = message.receiver if outgoing else message.sender
                summary = ConversationSummary(partner=partner, last_message=message)
                summaries[partner_id] = summary
            if not outgoing and not message.read:
                summary.unread_count += 1

        return list(summaries.values())

    async def mark_read(self, message_id: str, acting_user: User) -> Message:
        """Mark one message as read; only its receiver may do so.

        Marking an already-read message succeeds without further changes.
        """
        message = self._get_message(message_id)
        if message.receiver_id != acting_user.id:
            raise AuthorizationError("You can only mark messages sent to you as read")

        if not message.read:
            message.read = True
            self.db.commit()

        await self._notify(
            message.sender_id,
            "message_read_receipt",
            {
                "messageId": message.id,
                "readBy": acting_user.id,
                "readByName": acting_user.name,
                "readAt": utcnow().isoformat(),
            },
        )
        return message

    async def mark_all_read(self, from_user_id: str, to_user: User) -> int:
        """Mark every unread message from ``from_user_id`` to ``to_user`` as read.

        Returns:
            Number of messages changed
        """
        modified = (
            self.db.query(Message)
            .filter(
                Message.sender_id == from_user_id,
                Message.receiver_id == to_user.id,
                Message.read.is_(False),
            )
            .update({Message.read: True}, synchronize_session=False)
        )
        self.db.commit()

        if modified > 0:
            await self._notify(
                from_user_id,
                "messages_read",
                {"readBy": to_user.id, "count": modified, "readAt": utcnow().isoformat()},
            )
        return modified

    async def delete(self, message_id: str, acting_user: User) -> None:
        """Hard-delete a message; only its sender may do so."""
        message = self._get_message(message_id)
        if message.sender_id != acting_user.id:
            raise AuthorizationError("You can only delete messages you sent")

        receiver_id = message.receiver_id
        self.db.delete(message)
        self.db.commit()

        await self._notify(
            receiver_id,
            "message_deleted",
            {"messageId": message_id, "deletedBy": acting_user.id},
        )

    def unread_count(self, user: User) -> int:
        """Return how many messages addressed to ``user`` are unread."""
        count = (
            self.db.query(func.count(Message.id))
            .filter(Message.receiver_id == user.id, Message.read.is_(False))
            .scalar()
        )
        return int(count or 0)

    def _get_message(self, message_id: str) -> Message:
        message = self.db.get(Message, message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message

    async def _notify(self, user_id: str, event: str, payload: dict[str, Any]) -> bool:
        if self.delivery is None:
            return False
        return await self.delivery.push_to_user(user_id, event, payload)
