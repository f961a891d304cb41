"""Conversation export to JSON, CSV, HTML, Markdown and plain text."""

from .exporter import ConversationExporter, ExportResult
from .formats import ExportDocument, ExportFormat, render
from .paths import validate_export_path

__all__ = [
    "ConversationExporter",
    "ExportDocument",
    "ExportFormat",
    "ExportResult",
    "render",
    "validate_export_path",
]
