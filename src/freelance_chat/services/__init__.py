"""Domain services for the messaging core."""

from .message_store import ConversationSummary, MessageStore

__all__ = ["ConversationSummary", "MessageStore"]
