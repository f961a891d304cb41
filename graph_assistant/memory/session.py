"""Conversation sessions: an append-only message log plus a scratch context."""

import copy
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from graph_assistant.config import DEFAULT_SYSTEM_PROMPT
from graph_assistant.errors import ExportError, InputValidationError, LoadError
from graph_assistant.fileio import write_atomic

logger = logging.getLogger(__name__)

# Context keys owned by the session itself
RESERVED_CONTEXT_KEYS = frozenset({"session_id", "started_at", "system_prompt"})


class Role(str, Enum):
    """Who wrote a message."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise InputValidationError(f"Invalid role: {value!r}. Must be one of {valid}") from None


@dataclass(frozen=True)
class Message:
    """A single message in a conversation."""
    role: Role
    content: str
    metadata: dict = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert message to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "role": self.role.value,
            "content": self.content,
            "metadata": self.metadata,
        }


class MessageSnapshot(BaseModel):
    id: str
    timestamp: datetime
    role: Role
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SessionSnapshot(BaseModel):
    """On-disk shape of a saved session."""
    id: str
    startTime: datetime
    messages: list[MessageSnapshot]
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("messages")
    @classmethod
    def _not_empty(cls, messages: list[MessageSnapshot]) -> list[MessageSnapshot]:
        if not messages:
            raise ValueError("a session always has at least its system message")
        return messages


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ConversationSession:
    """
    A single conversation from creation to save/discard.

    Messages are kept in chronological order and are never reordered,
    edited or removed. The first message is always the system prompt.
    """

    def __init__(
        self,
        session_id: str,
        start_time: datetime,
        messages: list[Message],
        context: dict[str, Any] | None = None,
    ) -> None:
        if not messages:
            raise ValueError("ConversationSession requires at least the system message")
        self.id = session_id
        self.start_time = start_time
        self._messages = list(messages)
        self._context: dict[str, Any] = dict(context or {})

    @classmethod
    def create(
        cls,
        initial_context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> "ConversationSession":
        """Start a new session seeded with the system prompt."""
        session_id = str(uuid.uuid4())
        start_time = datetime.now(timezone.utc)
        prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        seed = Message(role=Role.SYSTEM, content=prompt, timestamp=start_time)

        context: dict[str, Any] = {
            "session_id": session_id,
            "started_at": start_time.isoformat(),
            "system_prompt": prompt,
        }
        for key, value in (initial_context or {}).items():
            if key in RESERVED_CONTEXT_KEYS:
                logger.warning(f"Ignoring reserved context key {key!r} for session {session_id}")
                continue
            context[key] = value

        logger.info(f"Created session {session_id}")
        return cls(session_id, start_time, [seed], context)

    # Message operations
    def add_message(self, role: Role | str, content: str, metadata: dict | None = None) -> Message:
        """Append a message and return it."""
        message = Message(
            role=Role.parse(role),
            content=content,
            metadata=copy.deepcopy(metadata) if metadata else {},
        )
        self._messages.append(message)
        return copy.deepcopy(message)

    def get_messages(self) -> list[Message]:
        """Snapshot of the messages, oldest first."""
        return copy.deepcopy(self._messages)

    @property
    def last_message(self) -> Message:
        return copy.deepcopy(self._messages[-1])

    def to_chat_messages(self) -> list[dict]:
        """Messages as role/content dicts (for LLM context)."""
        return [{"role": m.role.value, "content": m.content} for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    # Context operations
    def set_context(self, key: str, value: Any) -> None:
        self._context[key] = value

    def get_context(self, key: str, default: Any = None) -> Any:
        return self._context.get(key, default)

    @property
    def context(self) -> dict[str, Any]:
        return copy.deepcopy(self._context)

    # Persistence
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time.isoformat(),
            "messages": [m.to_dict() for m in self._messages],
            "context": self._context,
        }

    def save(self, path: str | Path) -> Path:
        """Write a JSON snapshot of the session."""
        path = Path(path)
        payload = json.dumps(self.to_dict(), indent=2, ensure_ascii=False, default=str)
        try:
            write_atomic(path, payload.encode("utf-8"))
        except OSError as e:
            raise ExportError(f"Could not save session to {path}: {e.strerror or e}") from e
        logger.info(f"Saved session {self.id} ({len(self._messages)} messages) to {path}")
        return path

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "ConversationSession":
        messages = [
            Message(
                id=m.id,
                timestamp=_as_utc(m.timestamp),
                role=m.role,
                content=m.content,
                metadata=m.metadata,
            )
            for m in snapshot.messages
        ]
        return cls(snapshot.id, _as_utc(snapshot.startTime), messages, snapshot.context)

    @classmethod
    def load(cls, path: str | Path) -> "ConversationSession":
        """Rebuild a saved session, keeping its original id and start time."""
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(f"Cannot read session file {path}: {e}") from e

        try:
            snapshot = SessionSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise LoadError(f"Invalid session file {path}: {e.error_count()} validation error(s)") from e

        session = cls.from_snapshot(snapshot)
        logger.info(f"Loaded session {session.id} ({len(session)} messages) from {path}")
        return session

    @classmethod
    def try_load(cls, path: str | Path) -> "ConversationSession | None":
        """Like ``load`` but returns None instead of raising."""
        try:
            return cls.load(path)
        except LoadError as e:
            logger.warning(str(e))
            return None
