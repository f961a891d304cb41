"""Write a conversation to disk in one of the export formats."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from graph_assistant.errors import ExportError
from graph_assistant.export.formats import ExportDocument, ExportFormat, render
from graph_assistant.export.paths import validate_export_path
from graph_assistant.fileio import write_atomic
from graph_assistant.memory.session import ConversationSession
from graph_assistant.observability import StructuredLogger

logger = logging.getLogger(__name__)

LOG_CATEGORY = "Export"


@dataclass(frozen=True)
class ExportResult:
    path: Path
    format: ExportFormat
    size_bytes: int
    message_count: int


class ConversationExporter:
    """Exports sessions; the target file is either fully written or untouched."""

    def __init__(self, structured_logger: StructuredLogger) -> None:
        self.log = structured_logger

    def export(
        self,
        session: ConversationSession,
        path: str | Path,
        fmt: ExportFormat | str | None = None,
        include_metadata: bool = False,
        title: str | None = None,
        exported_at: datetime | None = None,
    ) -> ExportResult:
        """
        Export a session to ``path``.

        Args:
            session: Conversation to export
            path: Target file; its directory must already exist
            fmt: Export format, inferred from the suffix when omitted
            include_metadata: Add message metadata, context and export info
            title: Document title
            exported_at: Export timestamp (defaults to now)

        Returns:
            ExportResult with the written size
        """
        target = validate_export_path(path)
        export_format = ExportFormat.parse(fmt) if fmt is not None else ExportFormat.from_path(target)

        document = ExportDocument.from_session(
            session,
            export_time=exported_at or datetime.now(timezone.utc),
            title=title,
            include_metadata=include_metadata,
        )
        payload = render(document, export_format).encode("utf-8")

        self._write_atomic(target, payload)

        size = target.stat().st_size
        self.log.info(
            LOG_CATEGORY,
            f"Exported {len(document.messages)} messages to {target} ({size} bytes)",
            path=str(target),
            format=export_format.value,
            size_bytes=size,
        )
        return ExportResult(
            path=target,
            format=export_format,
            size_bytes=size,
            message_count=len(document.messages),
        )

    def _write_atomic(self, target: Path, payload: bytes) -> None:
        try:
            write_atomic(target, payload)
        except OSError as e:
            self.log.error(LOG_CATEGORY, f"Export to {target} failed: {e}", error=e, path=str(target))
            raise ExportError(f"Could not write {target}: {e.strerror or e}") from e
