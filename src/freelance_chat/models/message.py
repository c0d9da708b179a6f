# src/freelance_chat/models/message.py
"""Models describing messages exchanged between two users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_chat.db.ids import new_id
from freelance_chat.db.session import Base
from freelance_chat.db.time import utcnow
from freelance_chat.models.user import User


class Message(Base):
    """A message from one participant to another, optionally scoped to a job.

    Only ``read`` changes after insert. ``job_id`` is a soft reference: jobs
    live in another service and may be removed while their history remains.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_pair", "sender_id", "receiver_id"),
        Index("ix_messages_receiver_read", "receiver_id", "read"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Status-transition notices posted from the conversation view.
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)

    sender: Mapped[User] = relationship("User", foreign_keys=[sender_id])
    receiver: Mapped[User] = relationship("User", foreign_keys=[receiver_id])
