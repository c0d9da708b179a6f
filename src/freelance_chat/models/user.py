# src/freelance_chat/models/user.py
"""Marketplace user identities.

Users are issued and managed by the account service; this table is read to
authenticate bearer credentials and to label messages with sender names.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from freelance_chat.db.ids import new_id
from freelance_chat.db.session import Base
from freelance_chat.db.time import utcnow


class User(Base):
    """A freelancer, employer or administrator."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="freelancer")
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
