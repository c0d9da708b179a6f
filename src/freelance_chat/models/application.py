# src/freelance_chat/models/application.py
"""Job applications anchoring per-application conversations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_chat.db.ids import new_id
from freelance_chat.db.session import Base
from freelance_chat.db.time import utcnow
from freelance_chat.models.job import Job
from freelance_chat.models.user import User

APPLICATION_STATUSES = ("pending", "shortlisted", "accepted", "rejected", "hired")


class Application(Base):
    """A freelancer's proposal and bid on a job.

    Owned by the applications service; the messaging core only reads it.
    """

    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("job_id", "freelancer_id", name="uq_application_job_freelancer"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    freelancer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    bid: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    applied_at: Mapped[datetime] = mapped_column(default=utcnow)

    job: Mapped[Job] = relationship("Job")
    freelancer: Mapped[User] = relationship("User")
