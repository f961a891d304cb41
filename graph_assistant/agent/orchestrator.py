"""Agent orchestrator - wires the components together for the shell and CLI."""

import logging
from pathlib import Path

from graph_assistant.agent.chat import ChatService
from graph_assistant.agent.prompts import build_system_message
from graph_assistant.agent.responders import Responder, build_responder
from graph_assistant.config import Settings
from graph_assistant.export import ConversationExporter, ExportFormat, ExportResult, validate_export_path
from graph_assistant.insights import InsightAggregator, InsightCategory, InsightRecord, TimeRange
from graph_assistant.memory import ConversationSession, Message, SessionStore
from graph_assistant.microsoft import GraphClient, build_auth_provider
from graph_assistant.microsoft.auth import AuthProvider
from graph_assistant.state import AppContext

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """Owns the current conversation and the services acting on it."""

    def __init__(
        self,
        context: AppContext,
        client: GraphClient,
        responder: Responder | None = None,
    ) -> None:
        self.context = context
        self.settings = context.settings
        self.client = client
        self.chat_service = ChatService(context, responder or build_responder(self.settings, client))
        self.insights = InsightAggregator(client, context)
        self.exporter = ConversationExporter(context.logger)
        self.store = SessionStore(self.settings.sessions_dir)
        self.session = self.new_session()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, auth: AuthProvider | None = None) -> "AgentOrchestrator":
        context = AppContext.create(settings)
        client = GraphClient(
            context.settings,
            auth or build_auth_provider(context.settings),
            context.logger,
        )
        return cls(context, client)

    def new_session(self, initial_context: dict | None = None) -> ConversationSession:
        """Start a fresh conversation and make it current."""
        ms_connected = self.client.auth.get_access_token() is not None
        prompt = build_system_message(self.settings.system_prompt, ms_connected=ms_connected)
        self.session = ConversationSession.create(initial_context, system_prompt=prompt)
        self.context.usage.record("new_session")
        return self.session

    def chat(self, text: str) -> Message:
        return self.chat_service.send(self.session, text)

    def get_insights(
        self,
        category: InsightCategory | str,
        time_range: TimeRange | str = TimeRange.TODAY,
        max_results: int | None = None,
    ) -> list[InsightRecord]:
        if max_results is None:
            max_results = self.settings.default_max_results
        return self.insights.get_insights(category, time_range, max_results)

    def export(
        self,
        path: str | Path,
        fmt: ExportFormat | str | None = None,
        include_metadata: bool = False,
        title: str | None = None,
    ) -> ExportResult:
        with self.context.usage.track("export"):
            return self.exporter.export(self.session, path, fmt, include_metadata, title)

    def save(self, path: str | Path | None = None) -> Path:
        """Save the current session to ``path`` or the session store."""
        with self.context.usage.track("save_session"):
            if path is None:
                return self.store.save(self.session)
            return self.session.save(validate_export_path(path))

    def load(self, path_or_id: str) -> ConversationSession:
        """Load a session by file path or by id from the session store."""
        with self.context.usage.track("load_session"):
            candidate = Path(path_or_id)
            if candidate.suffix == ".json" or candidate.exists():
                session = ConversationSession.load(candidate)
            else:
                session = self.store.load(path_or_id)
        self.session = session
        return session

    def test_connection(self) -> bool:
        with self.context.usage.track("test_connection"):
            return self.client.test_connection()

    def close(self) -> None:
        self.context.close()
