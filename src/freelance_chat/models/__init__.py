# src/freelance_chat/models/__init__.py
"""SQLAlchemy models for the messaging service."""

from .application import APPLICATION_STATUSES, Application
from .job import Job
from .message import Message
from .user import User

__all__ = [
    "Application", "APPLICATION_STATUSES",
    "Job",
    "Message",
    "User",
]
