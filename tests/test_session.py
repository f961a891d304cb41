"""Tests for conversation sessions and the session store."""

import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from graph_assistant.errors import ExportError, InputValidationError, LoadError
from graph_assistant.memory import ConversationSession, Message, Role, SessionStore


@pytest.fixture
def session():
    session = ConversationSession.create({"user": "test.user"}, system_prompt="You are a test assistant.")
    session.add_message(Role.USER, "What's on today?")
    session.add_message(Role.ASSISTANT, "Three meetings.", metadata={"source": "simulated"})
    return session


class TestCreate:
    """SUT: ConversationSession.create"""

    def test_starts_with_system_prompt(self):
        session = ConversationSession.create(system_prompt="Be brief.")
        assert len(session) == 1
        first = session.get_messages()[0]
        assert first.role is Role.SYSTEM
        assert first.content == "Be brief."

    def test_default_prompt(self):
        session = ConversationSession.create()
        assert session.last_message.content
        assert session.get_context("system_prompt") == session.last_message.content

    def test_context_seeded(self):
        session = ConversationSession.create({"user": "a"})
        assert session.get_context("session_id") == session.id
        assert session.get_context("started_at") == session.start_time.isoformat()
        assert session.get_context("user") == "a"

    def test_reserved_keys_ignored(self):
        session = ConversationSession.create({"session_id": "spoofed", "team": "x"})
        assert session.get_context("session_id") == session.id
        assert session.get_context("team") == "x"

    def test_unique_ids(self):
        assert ConversationSession.create().id != ConversationSession.create().id


class TestMessages:
    """SUT: append-only message log"""

    def test_appends_in_order(self, session):
        roles = [m.role for m in session.get_messages()]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT]

    def test_role_strings_accepted(self, session):
        message = session.add_message("USER", "hello")
        assert message.role is Role.USER

    def test_unknown_role_rejected(self, session):
        with pytest.raises(InputValidationError):
            session.add_message("tool", "output")
        assert len(session) == 3

    def test_snapshot_not_affected_by_later_appends(self, session):
        snapshot = session.get_messages()
        session.add_message(Role.USER, "one more")
        assert len(snapshot) == 3
        assert len(session) == 4

    def test_returned_copies_cannot_mutate_session(self, session):
        message = session.add_message(Role.ASSISTANT, "reply", metadata={"tags": ["a"]})
        message.metadata["tags"].append("b")
        session.get_messages()[-1].metadata["extra"] = True

        assert session.last_message.metadata == {"tags": ["a"]}

    def test_metadata_input_copied(self, session):
        metadata = {"source": "simulated"}
        session.add_message(Role.ASSISTANT, "reply", metadata=metadata)
        metadata["source"] = "changed"
        assert session.last_message.metadata == {"source": "simulated"}

    def test_messages_frozen(self, session):
        message = session.last_message
        with pytest.raises(AttributeError):
            message.content = "edited"

    def test_chat_messages(self, session):
        assert session.to_chat_messages()[1] == {"role": "user", "content": "What's on today?"}


class TestContext:
    def test_set_and_get(self, session):
        session.set_context("topic", "planning")
        assert session.get_context("topic") == "planning"
        assert session.get_context("missing", "default") == "default"

    def test_context_property_is_a_copy(self, session):
        session.context["topic"] = "leaked"
        assert session.get_context("topic") is None


class TestPersistence:
    """SUT: save / load / try_load"""

    def test_round_trip(self, session, tmp_path):
        path = session.save(tmp_path / "session.json")
        loaded = ConversationSession.load(path)

        assert loaded.id == session.id
        assert loaded.start_time == session.start_time
        assert loaded.context == session.context
        original = session.get_messages()
        restored = loaded.get_messages()
        assert [m.to_dict() for m in restored] == [m.to_dict() for m in original]

    def test_snapshot_shape(self, session, tmp_path):
        path = session.save(tmp_path / "session.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"id", "startTime", "messages", "context"}
        assert data["messages"][0]["role"] == "system"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(LoadError):
            ConversationSession.load(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LoadError):
            ConversationSession.load(path)

    def test_load_without_messages(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(
            json.dumps({"id": "x", "startTime": "2025-01-30T09:00:00+00:00", "messages": []}),
            encoding="utf-8",
        )
        with pytest.raises(LoadError):
            ConversationSession.load(path)

    def test_load_unknown_role(self, session, tmp_path):
        data = session.to_dict()
        data["messages"][1]["role"] = "robot"
        path = tmp_path / "session.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(LoadError):
            ConversationSession.load(path)

    def test_try_load_returns_none(self, tmp_path):
        assert ConversationSession.try_load(tmp_path / "missing.json") is None

    def test_save_into_missing_directory(self, session, tmp_path):
        with pytest.raises(ExportError):
            session.save(tmp_path / "nowhere" / "session.json")

    def test_failed_save_keeps_previous_snapshot(self, session, tmp_path, monkeypatch):
        path = session.save(tmp_path / "session.json")
        before = path.read_text(encoding="utf-8")
        session.add_message(Role.USER, "One more thing")

        def fail(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(ExportError):
            session.save(path)

        assert path.read_text(encoding="utf-8") == before
        assert list(tmp_path.iterdir()) == [path]


def _session_started(start_time: datetime) -> ConversationSession:
    return ConversationSession(
        f"session-{start_time:%H%M}",
        start_time,
        [Message(role=Role.SYSTEM, content="prompt", timestamp=start_time)],
    )


class TestSessionStore:
    """SUT: SessionStore"""

    def test_save_and_load_by_id(self, session, tmp_path):
        store = SessionStore(tmp_path / "sessions")
        path = store.save(session)

        assert path == tmp_path / "sessions" / f"{session.id}.json"
        assert store.load(session.id).id == session.id

    def test_list_newest_first(self, tmp_path):
        store = SessionStore(tmp_path)
        base = datetime(2025, 1, 30, 9, 0, tzinfo=timezone.utc)
        for hours in (0, 2, 1):
            store.save(_session_started(base + timedelta(hours=hours)))

        listed = store.list_sessions()
        assert [s["id"] for s in listed] == ["session-1100", "session-1000", "session-0900"]
        assert listed[0]["message_count"] == 1
        assert len(store.list_sessions(limit=2)) == 2

    def test_list_skips_unreadable_files(self, session, tmp_path):
        store = SessionStore(tmp_path)
        store.save(session)
        (tmp_path / "corrupt.json").write_text("[]", encoding="utf-8")

        assert [s["id"] for s in store.list_sessions()] == [session.id]

    def test_list_missing_directory(self, tmp_path):
        assert SessionStore(tmp_path / "absent").list_sessions() == []

    def test_rejects_path_like_ids(self, tmp_path):
        store = SessionStore(tmp_path)
        for bad in ("../escape", "a/b", "a.b", ""):
            with pytest.raises(InputValidationError):
                store.path_for(bad)

    def test_delete(self, session, tmp_path):
        store = SessionStore(tmp_path)
        store.save(session)
        assert store.delete(session.id) is True
        assert store.delete(session.id) is False
        with pytest.raises(LoadError):
            store.load(session.id)
