"""Insight record types and query enums."""

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from graph_assistant.errors import InputValidationError


class InsightType(str, Enum):
    MEETING = "Meeting"
    EMAIL = "Email"
    DOCUMENT = "Document"


class InsightCategory(str, Enum):
    """What to fetch."""
    MEETINGS = "meetings"
    EMAILS = "emails"
    DOCUMENTS = "documents"
    ALL = "all"
    RECENT = "recent"

    @classmethod
    def parse(cls, value: "InsightCategory | str") -> "InsightCategory":
        return _parse_enum(cls, value, "category")


class TimeRange(str, Enum):
    """How far back to look."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: "TimeRange | str") -> "TimeRange":
        return _parse_enum(cls, value, "time range")

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        """[start, end] for this range, ending at ``now``."""
        if self is TimeRange.TODAY:
            return now.replace(hour=0, minute=0, second=0, microsecond=0), now
        if self is TimeRange.WEEK:
            return now - timedelta(days=7), now
        return subtract_month(now), now


def _parse_enum(enum_cls: type[Enum], value: Any, label: str) -> Any:
    try:
        return enum_cls(value.lower() if isinstance(value, str) else value)
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise InputValidationError(f"Invalid {label}: {value!r}. Must be one of {valid}") from None


def subtract_month(moment: datetime) -> datetime:
    """Same time one calendar month earlier, clamping the day (Mar 31 -> Feb 28/29)."""
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class InsightRecord:
    """A normalized meeting, email or document summary."""
    type: InsightType
    title: str
    description: str
    timestamp: datetime
    source_data: dict = field(default_factory=dict)

    @property
    def simulated(self) -> bool:
        return bool(self.source_data.get("simulated"))

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "source_data": self.source_data,
        }


def parse_graph_datetime(value: str | None) -> datetime | None:
    """
    Parse Graph timestamps such as ``2025-01-30T09:00:00.0000000`` or
    ``2025-01-30T09:00:00Z`` into aware UTC datetimes.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    # Graph uses 7 fractional digits; fromisoformat wants at most 6
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        rest = tail
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        # calendarView returns naive times in the requested zone, UTC by default
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
