"""Structured logging with an in-memory ring buffer and optional JSONL file."""

import json
import logging
import traceback
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

# Keep the last N entries in memory
LOG_BUFFER_CAPACITY = 100


class LogLevel(str, Enum):
    """Severity of a structured log entry."""
    VERBOSE = "Verbose"
    INFORMATION = "Information"
    WARNING = "Warning"
    ERROR = "Error"
    DEBUG = "Debug"

    @classmethod
    def _missing_(cls, value: object) -> "LogLevel | None":
        # Accept "verbose", "INFO", "information" and friends
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if lowered in (member.value.lower(), member.name.lower()):
                    return member
            if lowered == "info":
                return cls.INFORMATION
        return None

    @property
    def stdlib_level(self) -> int:
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.INFORMATION: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class ErrorInfo:
    """Snapshot of an exception attached to a log entry."""
    message: str
    kind: str
    stack_trace: str

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorInfo":
        return cls(
            message=str(error),
            kind=type(error).__name__,
            stack_trace="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        )

    def to_dict(self) -> dict:
        return {"message": self.message, "kind": self.kind, "stackTrace": self.stack_trace}


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record."""
    level: LogLevel
    category: str
    message: str
    data: dict = field(default_factory=dict)
    error: ErrorInfo | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert entry to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "category": self.category,
            "message": self.message,
            "data": self.data,
            "error": self.error.to_dict() if self.error else None,
        }


class StructuredLogger:
    """
    Structured logger used by every component.

    Each entry is:
    - appended to a bounded ring buffer (oldest evicted first)
    - forwarded to the stdlib logger ``graph_assistant.<category>``
    - appended as a JSON line to ``log_file`` when one is configured
    """

    def __init__(self, log_file: str | None = None, capacity: int = LOG_BUFFER_CAPACITY) -> None:
        self._buffer: deque[LogEntry] = deque(maxlen=capacity)
        self.capacity = capacity
        self.log_file = Path(log_file) if log_file else None
        self._file_failed = False

    def log(
        self,
        level: LogLevel,
        category: str,
        message: str,
        data: dict | None = None,
        error: BaseException | None = None,
    ) -> LogEntry:
        """Record a structured entry and return it."""
        entry = LogEntry(
            level=LogLevel(level),
            category=category,
            message=message,
            data=dict(data or {}),
            error=ErrorInfo.from_exception(error) if error is not None else None,
        )
        self._buffer.append(entry)

        stdlib_logger = logging.getLogger(f"graph_assistant.{category}")
        suffix = f" {entry.data}" if entry.data else ""
        stdlib_logger.log(entry.level.stdlib_level, f"{message}{suffix}")

        if self.log_file is not None:
            self._write_line(entry)

        return entry

    def _write_line(self, entry: LogEntry) -> None:
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n")
        except OSError as e:
            # The buffer and stdlib logging keep working without the file
            if not self._file_failed:
                self._file_failed = True
                logging.getLogger(__name__).error(f"Cannot write log file {self.log_file}: {e}")
            return
        self._file_failed = False

    def verbose(self, category: str, message: str, **data: Any) -> LogEntry:
        return self.log(LogLevel.VERBOSE, category, message, data)

    def debug(self, category: str, message: str, **data: Any) -> LogEntry:
        return self.log(LogLevel.DEBUG, category, message, data)

    def info(self, category: str, message: str, **data: Any) -> LogEntry:
        return self.log(LogLevel.INFORMATION, category, message, data)

    def warning(self, category: str, message: str, error: BaseException | None = None, **data: Any) -> LogEntry:
        return self.log(LogLevel.WARNING, category, message, data, error)

    def error(self, category: str, message: str, error: BaseException | None = None, **data: Any) -> LogEntry:
        return self.log(LogLevel.ERROR, category, message, data, error)

    def entries(
        self,
        level: LogLevel | str | None = None,
        category: str | None = None,
        last: int | None = None,
    ) -> list[LogEntry]:
        """Return buffered entries, oldest first, optionally filtered."""
        result = list(self._buffer)
        if level is not None:
            wanted = LogLevel(level)
            result = [e for e in result if e.level is wanted]
        if category is not None:
            result = [e for e in result if e.category == category]
        if last is not None:
            result = result[-last:] if last > 0 else []
        return result

    def clear(self) -> None:
        """Drop all buffered entries."""
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


def read_log_file(
    path: str | Path,
    level: LogLevel | str | None = None,
    last: int | None = None,
) -> list[dict]:
    """Read entries back from a JSONL log file, skipping lines that don't parse."""
    path = Path(path)
    if not path.is_file():
        return []

    wanted = LogLevel(level).value if level is not None else None
    result = []
    with path.open(encoding="utf-8") as f:
        for line in f:
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(entry, dict):
                continue
            if wanted is None or entry.get("level") == wanted:
                result.append(entry)
    if last is not None:
        result = result[-last:] if last > 0 else []
    return result
