"""Structured logging, usage statistics and telemetry."""

from .structured_logger import ErrorInfo, LogEntry, LogLevel, StructuredLogger, read_log_file
from .usage import TelemetryClient, UsageStat, UsageTracker

__all__ = [
    "ErrorInfo",
    "LogEntry",
    "LogLevel",
    "StructuredLogger",
    "TelemetryClient",
    "UsageStat",
    "UsageTracker",
    "read_log_file",
]
