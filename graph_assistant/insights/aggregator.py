"""Meeting, email and document insights with a fixture fallback."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from graph_assistant.errors import ApiRequestError, AssistantError, InputValidationError
from graph_assistant.insights import fixtures
from graph_assistant.insights.models import (
    InsightCategory,
    InsightRecord,
    InsightType,
    TimeRange,
    parse_graph_datetime,
)
from graph_assistant.microsoft.graph_client import GraphClient
from graph_assistant.resilience import RetryPolicy, invoke_with_policy
from graph_assistant.state import AppContext

logger = logging.getLogger(__name__)

LOG_CATEGORY = "Insights"

# Fixed blend used by the "recent" category
RECENT_MEETINGS = 2
RECENT_EMAILS = 2
RECENT_DOCUMENTS = 1
RECENT_HOURS = 24


def _graph_time(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _meeting_params(start: datetime, end: datetime, limit: int) -> dict:
    return {
        "startDateTime": _graph_time(start),
        "endDateTime": _graph_time(end),
        "$select": "id,subject,start,end,location,organizer,bodyPreview",
        "$orderby": "start/dateTime",
        "$top": limit,
    }


def _email_params(start: datetime, end: datetime, limit: int) -> dict:
    return {
        "$filter": f"receivedDateTime ge {_graph_time(start)} and receivedDateTime le {_graph_time(end)}",
        "$select": "id,subject,from,receivedDateTime,bodyPreview,importance",
        "$orderby": "receivedDateTime desc",
        "$top": limit,
    }


def _document_params(start: datetime, end: datetime, limit: int) -> dict:
    return {
        "$filter": f"lastModifiedDateTime ge {_graph_time(start)} and lastModifiedDateTime le {_graph_time(end)}",
        "$select": "id,name,webUrl,lastModifiedDateTime,lastModifiedBy",
        "$orderby": "lastModifiedDateTime desc",
        "$top": limit,
    }


def normalize_meeting(event: dict, now: datetime) -> InsightRecord:
    start = parse_graph_datetime((event.get("start") or {}).get("dateTime"))
    end = parse_graph_datetime((event.get("end") or {}).get("dateTime"))
    organizer = ((event.get("organizer") or {}).get("emailAddress") or {}).get("name") or ""
    location = (event.get("location") or {}).get("displayName") or ""

    parts = []
    if start and end:
        parts.append(f"{start:%H:%M}-{end:%H:%M}")
    if organizer:
        parts.append(f"Organizer: {organizer}")
    if location:
        parts.append(f"Location: {location}")
    preview = (event.get("bodyPreview") or "").strip()
    if preview:
        parts.append(preview[:200])

    return InsightRecord(
        type=InsightType.MEETING,
        title=event.get("subject") or "(No title)",
        description=" | ".join(parts),
        timestamp=start or now,
        source_data=event,
    )


def normalize_email(message: dict, now: datetime) -> InsightRecord:
    sender = (message.get("from") or {}).get("emailAddress") or {}
    sender_label = sender.get("name") or sender.get("address") or "Unknown"
    preview = (message.get("bodyPreview") or "").strip()[:200]
    description = f"From: {sender_label}"
    if message.get("importance") == "high":
        description += " (high importance)"
    if preview:
        description += f" | {preview}"

    return InsightRecord(
        type=InsightType.EMAIL,
        title=message.get("subject") or "(No subject)",
        description=description,
        timestamp=parse_graph_datetime(message.get("receivedDateTime")) or now,
        source_data=message,
    )


def normalize_document(item: dict, now: datetime) -> InsightRecord:
    modified_by = ((item.get("lastModifiedBy") or {}).get("user") or {}).get("displayName") or ""
    description = f"Modified by {modified_by}" if modified_by else "Recently modified"
    if item.get("webUrl"):
        description += f" | {item['webUrl']}"

    return InsightRecord(
        type=InsightType.DOCUMENT,
        title=item.get("name") or "(Untitled)",
        description=description,
        timestamp=parse_graph_datetime(item.get("lastModifiedDateTime")) or now,
        source_data=item,
    )


@dataclass(frozen=True)
class _Source:
    """How to query, normalize and fake one insight type."""
    name: str
    endpoint: str
    params: Callable[[datetime, datetime, int], dict]
    normalize: Callable[[dict, datetime], InsightRecord]
    fixture: Callable[[datetime], list[dict]]


SOURCES = {
    InsightType.MEETING: _Source(
        "meetings", "/me/calendarView", _meeting_params, normalize_meeting, fixtures.meeting_payloads
    ),
    InsightType.EMAIL: _Source(
        "emails", "/me/messages", _email_params, normalize_email, fixtures.email_payloads
    ),
    InsightType.DOCUMENT: _Source(
        "documents", "/me/drive/recent", _document_params, normalize_document, fixtures.document_payloads
    ),
}

CATEGORY_TYPES = {
    InsightCategory.MEETINGS: InsightType.MEETING,
    InsightCategory.EMAILS: InsightType.EMAIL,
    InsightCategory.DOCUMENTS: InsightType.DOCUMENT,
}


def _values(payload: Any) -> list[dict]:
    if not isinstance(payload, dict) or not isinstance(payload.get("value", []), list):
        raise ApiRequestError(None, "Unexpected response shape (expected an object with 'value')")
    return [item for item in payload.get("value", []) if isinstance(item, dict)]


class InsightAggregator:
    """
    Summaries of the user's meetings, emails and documents.

    Each category is fetched through the retry wrapper. When the API is
    unavailable for any reason, the category falls back to sample data
    and only a warning is logged.
    """

    def __init__(
        self,
        client: GraphClient,
        context: AppContext,
        now: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.context = context
        self.log = context.logger
        self.policy = RetryPolicy.from_settings(context.settings)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

    def get_insights(
        self,
        category: InsightCategory | str,
        time_range: TimeRange | str = TimeRange.TODAY,
        max_results: int = 10,
    ) -> list[InsightRecord]:
        """
        Get insights for a category over a time range.

        Args:
            category: meetings, emails, documents, all or recent
            time_range: today, week or month (ignored by "recent")
            max_results: Upper bound on the number of records returned

        Returns:
            Records in source order, grouped by category
        """
        category = InsightCategory.parse(category)
        time_range = TimeRange.parse(time_range)
        if max_results < 0:
            raise InputValidationError(f"max_results must be >= 0, got {max_results}")

        with self.context.usage.track("get_insights"):
            now = self._now()
            start, end = time_range.window(now)

            if category in CATEGORY_TYPES:
                records = self._fetch(CATEGORY_TYPES[category], start, end, max_results, now)
            elif category is InsightCategory.ALL:
                # Remainder of the split is dropped
                per_category = max_results // 3
                records = []
                for insight_type in (InsightType.MEETING, InsightType.EMAIL, InsightType.DOCUMENT):
                    records.extend(self._fetch(insight_type, start, end, per_category, now))
            else:
                records = self._recent(now)[:max_results]

        self.log.info(
            LOG_CATEGORY,
            f"Returned {len(records)} {category.value} insights",
            insight_category=category.value,
            time_range=time_range.value,
            count=len(records),
        )
        return records

    def _recent(self, now: datetime) -> list[InsightRecord]:
        start_of_day, _ = TimeRange.TODAY.window(now)
        since = now - timedelta(hours=RECENT_HOURS)
        return (
            self._fetch(InsightType.MEETING, start_of_day, now, RECENT_MEETINGS, now)
            + self._fetch(InsightType.EMAIL, since, now, RECENT_EMAILS, now)
            + self._fetch(InsightType.DOCUMENT, since, now, RECENT_DOCUMENTS, now)
        )

    def _fetch(
        self,
        insight_type: InsightType,
        start: datetime,
        end: datetime,
        limit: int,
        now: datetime,
    ) -> list[InsightRecord]:
        if limit <= 0:
            return []

        source = SOURCES[insight_type]
        try:
            payload = invoke_with_policy(
                lambda: self.client.request(source.endpoint, params=source.params(start, end, limit)),
                f"get_{source.name}",
                self.policy,
                self.log,
                context={"category": source.name},
                sleep=self._sleep,
            )
            items = _values(payload)
        except AssistantError as e:
            self.log.warning(
                LOG_CATEGORY,
                f"Using sample {source.name} data: {e}",
                insight_category=source.name,
            )
            return self._fallback(source, limit, now)

        records = []
        for item in items[:limit]:
            try:
                records.append(source.normalize(item, now))
            except (AttributeError, TypeError, ValueError) as e:
                self.log.warning(
                    LOG_CATEGORY,
                    f"Skipping malformed {source.name} record: {e}",
                    error=e,
                    insight_category=source.name,
                )
        return records

    @staticmethod
    def _fallback(source: _Source, limit: int, now: datetime) -> list[InsightRecord]:
        payloads = source.fixture(now)[:limit]
        return [source.normalize({**payload, "simulated": True}, now) for payload in payloads]
