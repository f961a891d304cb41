"""Command-line assistant for Microsoft Graph insights and conversations."""

__version__ = "0.1.0"
