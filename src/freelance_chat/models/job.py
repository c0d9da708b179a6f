# src/freelance_chat/models/job.py
"""Job postings, consumed read-only as conversation scope."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_chat.db.ids import new_id
from freelance_chat.db.session import Base
from freelance_chat.db.time import utcnow
from freelance_chat.models.user import User


class Job(Base):
    """A job posted by an employer."""

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    employer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    employer: Mapped[User] = relationship("User")
