"""Conversation sessions and their on-disk history."""

from .session import ConversationSession, Message, Role
from .store import SessionStore

__all__ = ["ConversationSession", "Message", "Role", "SessionStore"]
