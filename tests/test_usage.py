"""Tests for usage statistics and telemetry."""

import json
import threading
from datetime import datetime, timezone

import httpx
import pytest

from graph_assistant.observability import TelemetryClient, UsageTracker
from graph_assistant.state import AppContext


class RecordingTelemetry:
    def __init__(self):
        self.events = []

    def send_event(self, name, properties=None):
        self.events.append((name, properties))


class TestUsageTracker:
    """SUT: UsageTracker"""

    def test_record_counts(self):
        tracker = UsageTracker()
        tracker.record("chat", 0.5)
        stat = tracker.record("chat", 0.25, error=True)

        assert stat.count == 2
        assert stat.error_count == 1
        assert stat.total_duration == pytest.approx(0.75)
        assert stat.first_used <= stat.last_used

    def test_error_count_never_exceeds_count(self):
        tracker = UsageTracker()
        for i in range(10):
            tracker.record("export", error=i % 3 == 0)
        stat = tracker.get("export")
        assert stat.count >= stat.error_count
        assert stat.error_count == 4

    def test_track_success(self):
        tracker = UsageTracker()
        with tracker.track("save_session"):
            pass
        assert tracker.get("save_session").count == 1
        assert tracker.get("save_session").error_count == 0

    def test_track_records_error_and_reraises(self):
        tracker = UsageTracker()
        with pytest.raises(RuntimeError):
            with tracker.track("export"):
                raise RuntimeError("disk full")
        assert tracker.get("export").error_count == 1

    def test_stats_are_copies(self):
        tracker = UsageTracker()
        tracker.record("chat")
        tracker.stats()["chat"].count = 99
        assert tracker.get("chat").count == 1

    def test_reset(self):
        tracker = UsageTracker()
        tracker.record("chat")
        tracker.reset()
        assert tracker.stats() == {}
        assert tracker.get("chat") is None

    def test_sends_telemetry_event(self):
        telemetry = RecordingTelemetry()
        UsageTracker(telemetry=telemetry).record("chat", 1.0)
        assert telemetry.events == [("feature_used", {"feature": "chat", "duration": 1.0, "error": False})]

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "usage.json"
        tracker = UsageTracker()
        tracker.record("chat", 1.0)
        tracker.record("chat", 1.0, error=True)
        tracker.save(path)

        restored = UsageTracker()
        restored.record("chat", 0.5)
        restored.load(path)

        stat = restored.get("chat")
        assert stat.count == 3
        assert stat.error_count == 1
        assert stat.total_duration == pytest.approx(2.5)

    def test_load_ignores_bad_files(self, tmp_path):
        path = tmp_path / "usage.json"
        path.write_text("not json", encoding="utf-8")
        tracker = UsageTracker()
        tracker.load(path)
        tracker.load(tmp_path / "missing.json")
        assert tracker.stats() == {}

    def test_load_skips_invalid_entries(self, tmp_path):
        path = tmp_path / "usage.json"
        path.write_text(json.dumps({
            "chat": {"count": "lots"},
            "search": 5,
            "export": {"count": 1, "error_count": 5, "last_used": "2025-01-30T12:00:00"},
            "save_session": {"count": 2, "total_duration": -1},
        }), encoding="utf-8")

        tracker = UsageTracker()
        tracker.load(path)

        assert set(tracker.stats()) == {"export"}
        stat = tracker.get("export")
        assert stat.count == 1
        assert stat.error_count == 1
        assert stat.last_used == datetime(2025, 1, 30, 12, tzinfo=timezone.utc)


class TestTelemetryClient:
    """SUT: TelemetryClient"""

    def test_disabled_without_endpoint(self):
        assert TelemetryClient(endpoint="", enabled=True).enabled is False

    def test_disabled_sends_nothing(self):
        calls = []
        client = TelemetryClient(
            endpoint="https://telemetry.example.com/events",
            enabled=False,
            transport=httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(202)),
        )
        client.send_event("feature_used", {"feature": "chat"})
        client.flush(timeout=5)
        assert calls == []

    def test_posts_event(self):
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(202)

        client = TelemetryClient(
            endpoint="https://telemetry.example.com/events",
            enabled=True,
            transport=httpx.MockTransport(handler),
        )
        client.send_event("feature_used", {"feature": "chat"})
        client.flush(timeout=5)
        client.close()

        assert len(received) == 1
        assert received[0]["event"] == "feature_used"
        assert received[0]["properties"] == {"feature": "chat"}
        assert "version" in received[0]

    def test_failures_never_surface(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = TelemetryClient(
            endpoint="https://telemetry.example.com/events",
            enabled=True,
            transport=httpx.MockTransport(handler),
        )
        client.send_event("feature_used", {"feature": "chat"})
        client.send_event("feature_used", {"feature": "export"})
        client.flush(timeout=5)
        client.close()

    def test_server_error_swallowed(self):
        client = TelemetryClient(
            endpoint="https://telemetry.example.com/events",
            enabled=True,
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        tracker = UsageTracker(telemetry=client)
        tracker.record("chat")
        client.flush(timeout=5)
        client.close()
        assert tracker.get("chat").count == 1

    def test_close_cancels_queued_events(self):
        release = threading.Event()

        def handler(request):
            release.wait(timeout=5)
            return httpx.Response(202)

        client = TelemetryClient(
            endpoint="https://telemetry.example.com/events",
            enabled=True,
            transport=httpx.MockTransport(handler),
        )
        for feature in ("chat", "export", "save_session"):
            client.send_event("feature_used", {"feature": feature})
        queued = list(client._pending)

        client.close()
        release.set()

        assert sum(f.cancelled() for f in queued) >= 2


class TestAppContext:
    def test_usage_persisted_across_contexts(self, settings):
        first = AppContext.create(settings)
        first.usage.record("chat")
        first.close()

        second = AppContext.create(settings)
        assert second.usage.get("chat").count == 1
        second.close()
