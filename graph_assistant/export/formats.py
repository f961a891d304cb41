"""Export formats: a document model built once, serialized per format."""

import csv
import io
import json
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from graph_assistant import __version__
from graph_assistant.errors import InputValidationError
from graph_assistant.memory.session import ConversationSession, Message, Role

TEXT_WIDTH = 80
DEFAULT_TITLE = "Conversation Export"

ROLE_COLORS = {
    Role.SYSTEM: "#6c757d",
    Role.USER: "#0d6efd",
    Role.ASSISTANT: "#198754",
}


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    HTML = "html"
    MARKDOWN = "markdown"
    TEXT = "text"

    @classmethod
    def parse(cls, value: "ExportFormat | str") -> "ExportFormat":
        if isinstance(value, ExportFormat):
            return value
        key = str(value).strip().lower().lstrip(".")
        try:
            return _FORMAT_ALIASES.get(key) or cls(key)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise InputValidationError(f"Invalid export format: {value!r}. Must be one of {valid}") from None

    @classmethod
    def from_path(cls, path: str | Path) -> "ExportFormat":
        """Infer the format from a file suffix (``.md`` -> markdown)."""
        suffix = Path(path).suffix
        if not suffix:
            raise InputValidationError(f"Cannot infer export format from {path}; pass one explicitly")
        return cls.parse(suffix)

    @property
    def extension(self) -> str:
        return {ExportFormat.MARKDOWN: "md", ExportFormat.TEXT: "txt"}.get(self, self.value)


_FORMAT_ALIASES = {
    "structured-data": ExportFormat.JSON,
    "tabular": ExportFormat.CSV,
    "hypertext": ExportFormat.HTML,
    "htm": ExportFormat.HTML,
    "lightweight-markup": ExportFormat.MARKDOWN,
    "md": ExportFormat.MARKDOWN,
    "plain-text": ExportFormat.TEXT,
    "txt": ExportFormat.TEXT,
}


@dataclass
class ExportDocument:
    """Everything any format needs, captured from a session once."""
    title: str
    conversation_id: str
    start_time: datetime
    export_time: datetime
    messages: list[Message]
    context: dict[str, Any] = field(default_factory=dict)
    include_metadata: bool = False

    @classmethod
    def from_session(
        cls,
        session: ConversationSession,
        export_time: datetime,
        title: str | None = None,
        include_metadata: bool = False,
    ) -> "ExportDocument":
        return cls(
            title=title or DEFAULT_TITLE,
            conversation_id=session.id,
            start_time=session.start_time,
            export_time=export_time,
            messages=session.get_messages(),
            context=session.context,
            include_metadata=include_metadata,
        )

    @property
    def header_fields(self) -> list[tuple[str, str]]:
        return [
            ("Conversation ID", self.conversation_id),
            ("Start Time", _display_time(self.start_time)),
            ("Messages", str(len(self.messages))),
            ("Exported", _display_time(self.export_time)),
        ]


def _display_time(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _compact_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True, default=str)


def render_json(doc: ExportDocument) -> str:
    messages = []
    for m in doc.messages:
        item = {
            "id": m.id,
            "timestamp": m.timestamp.isoformat(),
            "role": m.role.value,
            "content": m.content,
        }
        if doc.include_metadata:
            item["metadata"] = m.metadata
        messages.append(item)

    data: dict[str, Any] = {
        "conversationId": doc.conversation_id,
        "startTime": doc.start_time.isoformat(),
        "exportTime": doc.export_time.isoformat(),
        "messageCount": len(doc.messages),
        "messages": messages,
    }
    if doc.include_metadata:
        data["context"] = doc.context
        data["exportMetadata"] = {
            "title": doc.title,
            "format": ExportFormat.JSON.value,
            "exportedBy": "graph-assistant",
            "version": __version__,
        }
    return json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n"


_NEWLINES = re.compile(r"[ \t]*(?:\r\n|\r|\n)+[ \t]*")


def render_csv(doc: ExportDocument) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    columns = ["timestamp", "role", "content"]
    if doc.include_metadata:
        columns.append("metadata")
    writer.writerow(columns)

    for m in doc.messages:
        row = [m.timestamp.isoformat(), m.role.value, _NEWLINES.sub(" ", m.content)]
        if doc.include_metadata:
            row.append(_compact_json(m.metadata))
        writer.writerow(row)
    return buffer.getvalue()


HTML_STYLE = """
body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; max-width: 900px; margin: 2em auto; color: #212529; }
.header { border-bottom: 2px solid #dee2e6; margin-bottom: 1.5em; }
.header p { margin: 0.2em 0; }
.message { border-left: 4px solid; padding: 0.5em 1em; margin: 1em 0; background: #f8f9fa; }
.meta { font-size: 0.85em; color: #6c757d; margin-bottom: 0.4em; }
.role { font-weight: bold; margin-right: 1em; }
.content { white-space: pre-wrap; }
.metadata { font-size: 0.8em; color: #495057; }
""" + "".join(
    f".message.{role.value} {{ border-left-color: {color}; }} .message.{role.value} .role {{ color: {color}; }}\n"
    for role, color in ROLE_COLORS.items()
)


def render_html(doc: ExportDocument) -> str:
    html = ET.Element("html", lang="en")
    head = ET.SubElement(html, "head")
    ET.SubElement(head, "meta", charset="utf-8")
    ET.SubElement(head, "title").text = doc.title
    ET.SubElement(head, "style").text = HTML_STYLE

    body = ET.SubElement(html, "body")
    header = ET.SubElement(body, "div", {"class": "header"})
    ET.SubElement(header, "h1").text = doc.title
    for label, value in doc.header_fields:
        paragraph = ET.SubElement(header, "p")
        strong = ET.SubElement(paragraph, "strong")
        strong.text = f"{label}:"
        strong.tail = f" {value}"

    for m in doc.messages:
        block = ET.SubElement(body, "div", {"class": f"message {m.role.value}"})
        meta = ET.SubElement(block, "div", {"class": "meta"})
        ET.SubElement(meta, "span", {"class": "role"}).text = m.role.value.upper()
        ET.SubElement(meta, "span", {"class": "timestamp"}).text = _display_time(m.timestamp)
        ET.SubElement(block, "div", {"class": "content"}).text = m.content
        if doc.include_metadata and m.metadata:
            ET.SubElement(block, "pre", {"class": "metadata"}).text = json.dumps(
                m.metadata, indent=2, ensure_ascii=False, sort_keys=True, default=str
            )

    return "<!DOCTYPE html>\n" + ET.tostring(html, encoding="unicode", method="html") + "\n"


def render_markdown(doc: ExportDocument) -> str:
    blocks = [f"# {doc.title}", "\n".join(f"- **{label}:** {value}" for label, value in doc.header_fields), "---"]
    for m in doc.messages:
        blocks.append(f"## {m.role.value.upper()}")
        blocks.append(f"*{_display_time(m.timestamp)}*")
        blocks.append(m.content)
        if doc.include_metadata and m.metadata:
            blocks.append(f"`{_compact_json(m.metadata)}`")
        blocks.append("---")
    return "\n\n".join(blocks) + "\n"


def render_text(doc: ExportDocument) -> str:
    heavy = "=" * TEXT_WIDTH
    light = "-" * TEXT_WIDTH
    label_width = max(len(label) for label, _ in doc.header_fields)

    lines = [heavy, doc.title.center(TEXT_WIDTH).rstrip(), heavy]
    lines.extend(f"{label.ljust(label_width)} : {value}" for label, value in doc.header_fields)
    lines.extend([heavy, ""])

    for m in doc.messages:
        lines.append(f"[{m.role.value.upper()}] {_display_time(m.timestamp)}")
        lines.append(m.content)
        if doc.include_metadata and m.metadata:
            lines.append(f"metadata: {_compact_json(m.metadata)}")
        lines.append(light)
    return "\n".join(lines) + "\n"


RENDERERS: dict[ExportFormat, Callable[[ExportDocument], str]] = {
    ExportFormat.JSON: render_json,
    ExportFormat.CSV: render_csv,
    ExportFormat.HTML: render_html,
    ExportFormat.MARKDOWN: render_markdown,
    ExportFormat.TEXT: render_text,
}


def render(doc: ExportDocument, fmt: ExportFormat) -> str:
    return RENDERERS[fmt](doc)
