"""Shared pytest fixtures."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from graph_assistant.agent import AgentOrchestrator
from graph_assistant.config import Settings
from graph_assistant.microsoft import GraphClient, StaticTokenAuth
from graph_assistant.state import AppContext

FIXED_NOW = datetime(2025, 1, 30, 12, 0, tzinfo=timezone.utc)


class GraphStub:
    """
    Canned Graph API for ``httpx.MockTransport``.

    Routes are keyed by URL path with the ``/v1.0`` prefix removed. Each route
    holds a list of responses; the last one repeats once the others are used.
    Unknown paths answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, *responses) -> None:
        self.routes[path] = list(responses)

    def json_route(self, path: str, payload, status_code: int = 200) -> None:
        self.route(path, httpx.Response(status_code, json=payload))

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if _path(r) == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get(_path(request))
        if not responses:
            return httpx.Response(404, json={"error": {"code": "NotFound", "message": "Resource not found"}})

        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response


def _path(request: httpx.Request) -> str:
    path = request.url.path
    return path[len("/v1.0"):] if path.startswith("/v1.0/") else path


def request_json(request: httpx.Request):
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        auth_mode="token",
        access_token="test-token",
        max_retries=3,
        retry_delay_seconds=0,
        log_level="DEBUG",
        telemetry_enabled=False,
    )


@pytest.fixture
def app_context(settings):
    context = AppContext.create(settings)
    yield context
    context.telemetry.close()


@pytest.fixture
def graph_stub():
    return GraphStub()


@pytest.fixture
def graph_client(settings, app_context, graph_stub):
    return GraphClient(
        settings,
        StaticTokenAuth("test-token", identity="test.user@contoso.com"),
        app_context.logger,
        transport=httpx.MockTransport(graph_stub.handler),
    )


@pytest.fixture
def orchestrator(app_context, graph_client):
    return AgentOrchestrator(app_context, graph_client)
