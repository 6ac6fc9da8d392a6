"""Durable conversation log."""

from brainstore.conversations.models import ConversationLogEntry, ConversationStats
from brainstore.conversations.store import ConversationLog

__all__ = ["ConversationLog", "ConversationLogEntry", "ConversationStats"]
