"""Application context: configuration plus process-local state."""

import logging
from dataclasses import dataclass

from graph_assistant.config import Settings
from graph_assistant.observability import StructuredLogger, TelemetryClient, UsageTracker

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Everything a component needs besides its direct collaborators.

    Built once at startup and passed into each component instead of
    reaching for a global settings object.
    """
    settings: Settings
    logger: StructuredLogger
    usage: UsageTracker
    telemetry: TelemetryClient

    @classmethod
    def create(cls, settings: Settings | None = None) -> "AppContext":
        settings = settings or Settings()
        telemetry = TelemetryClient(
            endpoint=settings.telemetry_endpoint,
            enabled=settings.telemetry_enabled,
        )
        usage = UsageTracker(telemetry=telemetry)
        usage.load(settings.usage_file)
        context = cls(
            settings=settings,
            logger=StructuredLogger(log_file=settings.log_file),
            usage=usage,
            telemetry=telemetry,
        )
        logger.debug(f"Application context created (telemetry={'on' if telemetry.enabled else 'off'})")
        return context

    def close(self) -> None:
        """Persist usage counters and release background resources."""
        try:
            self.usage.save(self.settings.usage_file)
        except OSError as e:
            logger.warning(f"Could not save usage stats: {e}")
        self.telemetry.flush(timeout=2.0)
        self.telemetry.close()
