"""On-disk store of saved conversation sessions, one JSON file per session."""

import logging
from pathlib import Path

from graph_assistant.errors import InputValidationError, LoadError
from graph_assistant.memory.session import ConversationSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Directory-backed conversation history."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        # Session ids are UUIDs; anything path-like is rejected
        if not session_id or any(c in session_id for c in "/\\."):
            raise InputValidationError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, session: ConversationSession) -> Path:
        """Persist a session snapshot, replacing any previous one."""
        self.directory.mkdir(parents=True, exist_ok=True)
        return session.save(self.path_for(session.id))

    def load(self, session_id: str) -> ConversationSession:
        return ConversationSession.load(self.path_for(session_id))

    def list_sessions(self, limit: int = 50) -> list[dict]:
        """List saved sessions, newest first."""
        if not self.directory.is_dir():
            return []

        sessions = []
        for path in self.directory.glob("*.json"):
            try:
                session = ConversationSession.load(path)
            except LoadError as e:
                logger.warning(f"Skipping unreadable session file: {e}")
                continue
            sessions.append({
                "id": session.id,
                "started_at": session.start_time,
                "message_count": len(session),
                "path": path,
            })

        sessions.sort(key=lambda s: s["started_at"], reverse=True)
        return sessions[:limit]

    def delete(self, session_id: str) -> bool:
        """Delete a saved session."""
        path = self.path_for(session_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted session {session_id}")
        return True
