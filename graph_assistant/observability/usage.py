"""Per-feature usage statistics and fire-and-forget telemetry."""

import json
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from graph_assistant import __version__
from graph_assistant.fileio import write_atomic

logger = logging.getLogger(__name__)


@dataclass
class UsageStat:
    """Counters for a single feature. Monotonic until an explicit reset."""
    count: int = 0
    first_used: datetime | None = None
    last_used: datetime | None = None
    total_duration: float = 0.0
    error_count: int = 0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "first_used": self.first_used.isoformat() if self.first_used else None,
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "total_duration": round(self.total_duration, 3),
            "error_count": self.error_count,
        }


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SavedUsage(BaseModel):
    """One feature's counters as written by ``UsageTracker.save``."""
    count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    total_duration: float = Field(default=0.0, ge=0.0)
    first_used: datetime | None = None
    last_used: datetime | None = None

    @field_validator("first_used", "last_used")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class TelemetryClient:
    """
    Sends usage events in the background.

    Events are submitted to a small thread pool and the future is never
    awaited by the caller. Failures are logged at debug level only.
    """

    def __init__(
        self,
        endpoint: str = "",
        enabled: bool = False,
        transport: httpx.BaseTransport | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.endpoint = endpoint
        self.enabled = enabled and bool(endpoint)
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self._executor: ThreadPoolExecutor | None = None
        self._pending: list[Future] = []

    def send_event(self, name: str, properties: dict | None = None) -> None:
        """Queue an event. Never raises and never blocks on the request."""
        if not self.enabled:
            return

        payload = {
            "event": name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "properties": properties or {},
        }
        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="telemetry")
            # Reap finished jobs
            self._pending = [f for f in self._pending if not f.done()]
            future = self._executor.submit(self._post, payload)
            future.add_done_callback(self._log_failure)
            self._pending.append(future)
        except Exception as e:
            logger.debug(f"Failed to queue telemetry event {name}: {e}")

    def _post(self, payload: dict) -> None:
        with httpx.Client(transport=self.transport, timeout=self.timeout_seconds) as client:
            response = client.post(self.endpoint, json=payload)
            response.raise_for_status()

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.debug(f"Telemetry event dropped: {type(error).__name__}: {error}")

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued events to finish (used at shutdown and in tests)."""
        if self._pending:
            wait(self._pending, timeout=timeout)
            self._pending = [f for f in self._pending if not f.done()]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None


class UsageTracker:
    """Usage counters keyed by feature name, optionally carried across runs via ``save``/``load``."""

    def __init__(self, telemetry: TelemetryClient | None = None) -> None:
        self._stats: dict[str, UsageStat] = {}
        self.telemetry = telemetry

    def record(self, feature: str, duration_seconds: float = 0.0, error: bool = False) -> UsageStat:
        """Record one invocation of ``feature``."""
        now = datetime.now(timezone.utc)
        stat = self._stats.setdefault(feature, UsageStat())
        stat.count += 1
        if stat.first_used is None:
            stat.first_used = now
        stat.last_used = now
        stat.total_duration += max(0.0, duration_seconds)
        if error:
            stat.error_count += 1

        if self.telemetry is not None:
            self.telemetry.send_event(
                "feature_used",
                {"feature": feature, "duration": round(duration_seconds, 3), "error": error},
            )
        return replace(stat)

    @contextmanager
    def track(self, feature: str) -> Iterator[None]:
        """Time the wrapped block; an exception counts as an error and is re-raised."""
        started = time.perf_counter()
        try:
            yield
        except Exception:
            self.record(feature, time.perf_counter() - started, error=True)
            raise
        self.record(feature, time.perf_counter() - started)

    def get(self, feature: str) -> UsageStat | None:
        stat = self._stats.get(feature)
        return replace(stat) if stat else None

    def stats(self) -> dict[str, UsageStat]:
        """Copies of all counters."""
        return {name: replace(stat) for name, stat in self._stats.items()}

    def reset(self) -> None:
        self._stats.clear()

    def save(self, path: str | Path) -> None:
        """Write the counters to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({name: stat.to_dict() for name, stat in self._stats.items()}, indent=2)
        write_atomic(path, payload.encode("utf-8"))

    def load(self, path: str | Path) -> None:
        """Merge counters saved by ``save``. Unreadable files and invalid entries are skipped."""
        path = Path(path)
        if not path.is_file():
            return
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable usage file {path}: {e}")
            return
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring malformed usage file {path}")
            return

        for name, values in raw.items():
            try:
                saved = SavedUsage.model_validate(values)
            except ValidationError as e:
                logger.warning(f"Skipping invalid usage entry {name!r} in {path}: {e.error_count()} error(s)")
                continue

            stat = self._stats.setdefault(name, UsageStat())
            stat.count += saved.count
            stat.error_count += min(saved.error_count, saved.count)
            stat.total_duration += saved.total_duration
            if saved.first_used and (stat.first_used is None or saved.first_used < stat.first_used):
                stat.first_used = saved.first_used
            if saved.last_used and (stat.last_used is None or saved.last_used > stat.last_used):
                stat.last_used = saved.last_used

