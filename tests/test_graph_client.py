"""Tests for the Graph API client."""

import httpx
import pytest

from conftest import request_json
from graph_assistant.errors import ApiRequestError, AuthenticationError
from graph_assistant.microsoft import GraphClient, StaticTokenAuth, build_auth_provider
from graph_assistant.microsoft.auth import AzureCliAuth


class TestRequest:
    """SUT: GraphClient.request"""

    def test_default_headers(self, graph_client, graph_stub):
        graph_stub.json_route("/me", {"id": "1"})
        graph_client.request("/me")

        sent = graph_stub.requests[0]
        assert sent.headers["Authorization"] == "Bearer test-token"
        assert sent.headers["Content-Type"] == "application/json"
        assert sent.headers["Accept"] == "application/json"
        assert str(sent.url) == "https://graph.microsoft.com/v1.0/me"

    def test_caller_headers_win(self, graph_client, graph_stub):
        graph_stub.json_route("/me", {"id": "1"})
        graph_client.request("/me", headers={"Accept": "text/plain", "ConsistencyLevel": "eventual"})

        sent = graph_stub.requests[0]
        assert sent.headers["Accept"] == "text/plain"
        assert sent.headers["ConsistencyLevel"] == "eventual"
        assert sent.headers["Authorization"] == "Bearer test-token"

    def test_returns_parsed_json(self, graph_client, graph_stub):
        graph_stub.json_route("/me/messages", {"value": [{"id": "m1"}]})
        assert graph_client.request("/me/messages") == {"value": [{"id": "m1"}]}

    def test_empty_body_returns_empty_dict(self, graph_client, graph_stub):
        graph_stub.route("/me/events/1", httpx.Response(204))
        assert graph_client.request("/me/events/1", "DELETE") == {}

    def test_non_json_body_returns_text(self, graph_client, graph_stub):
        graph_stub.route("/me/photo", httpx.Response(200, text="plain text"))
        assert graph_client.request("/me/photo") == "plain text"

    def test_post_body_serialized(self, graph_client, graph_stub):
        graph_stub.json_route("/me/events", {"id": "e1"}, status_code=201)
        graph_client.request("/me/events", "post", body={"subject": "Sync"})

        sent = graph_stub.requests[0]
        assert sent.method == "POST"
        assert request_json(sent) == {"subject": "Sync"}

    def test_get_ignores_body(self, graph_client, graph_stub):
        graph_stub.json_route("/me", {})
        graph_client.request("/me", body={"ignored": True})
        assert graph_stub.requests[0].content == b""

    def test_query_params(self, graph_client, graph_stub):
        graph_stub.json_route("/me/messages", {"value": []})
        graph_client.request("/me/messages", params={"$top": 5})
        assert graph_stub.requests[0].url.params["$top"] == "5"

    def test_absolute_url_used_as_is(self, graph_client, graph_stub):
        graph_stub.json_route("/beta/me", {"id": "1"})
        graph_client.request("https://graph.microsoft.com/beta/me")
        assert str(graph_stub.requests[0].url) == "https://graph.microsoft.com/beta/me"

    def test_error_status_raises(self, graph_client, graph_stub):
        graph_stub.json_route(
            "/me", {"error": {"code": "ServiceUnavailable", "message": "Try again later"}}, status_code=503
        )

        with pytest.raises(ApiRequestError) as exc_info:
            graph_client.request("/me")
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Try again later"
        assert str(exc_info.value) == "Graph API error (503): Try again later"

    def test_error_without_json_body(self, graph_client, graph_stub):
        graph_stub.route("/me", httpx.Response(500, text="upstream broke"))
        with pytest.raises(ApiRequestError) as exc_info:
            graph_client.request("/me")
        assert exc_info.value.message == "upstream broke"

    def test_timeout_maps_to_api_error(self, graph_client, graph_stub):
        graph_stub.route("/me", httpx.ReadTimeout("read timed out"))

        with pytest.raises(ApiRequestError) as exc_info:
            graph_client.request("/me", timeout_seconds=2)
        assert exc_info.value.status_code is None
        assert "timed out after 2s" in str(exc_info.value)

    def test_transport_error_maps_to_api_error(self, graph_client, graph_stub):
        graph_stub.route("/me", httpx.ConnectError("connection refused"))
        with pytest.raises(ApiRequestError) as exc_info:
            graph_client.request("/me")
        assert "ConnectError" in str(exc_info.value)

    def test_missing_token_raises_before_sending(self, settings, app_context, graph_stub):
        client = GraphClient(
            settings, StaticTokenAuth(""), app_context.logger, transport=httpx.MockTransport(graph_stub.handler)
        )

        with pytest.raises(AuthenticationError) as exc_info:
            client.request("/me")
        assert exc_info.value.transient is False
        assert graph_stub.requests == []


class TestProfile:
    """SUT: get_me and test_connection"""

    def test_get_me(self, graph_client, graph_stub):
        graph_stub.json_route("/me", {
            "id": "u1",
            "displayName": "Test User",
            "userPrincipalName": "test.user@contoso.com",
            "jobTitle": "Engineer",
        })
        assert graph_client.get_me() == {
            "id": "u1",
            "name": "Test User",
            "email": "test.user@contoso.com",
            "job_title": "Engineer",
        }

    def test_connection_ok(self, graph_client, graph_stub, app_context):
        graph_stub.json_route("/me", {"id": "u1", "displayName": "Test User"})
        assert graph_client.test_connection() is True
        assert app_context.logger.entries(category="Api", level="Information")

    def test_connection_failure_is_reported_not_raised(self, graph_client, graph_stub, app_context):
        graph_stub.json_route("/me", {"error": {"message": "Unauthorized"}}, status_code=401)
        assert graph_client.test_connection() is False
        assert app_context.logger.entries(category="Api", level="Warning")


class TestAuthProviders:
    def test_static_token(self):
        auth = StaticTokenAuth("abc", identity="me@contoso.com")
        assert auth.get_access_token() == "abc"
        assert auth.get_current_identity() == "me@contoso.com"

    def test_empty_static_token_is_none(self):
        assert StaticTokenAuth("").get_access_token() is None

    def test_build_from_settings(self, settings):
        assert isinstance(build_auth_provider(settings), StaticTokenAuth)
        settings.auth_mode = "azure_cli"
        assert isinstance(build_auth_provider(settings), AzureCliAuth)

    def test_azure_cli_missing(self, monkeypatch):
        monkeypatch.setattr("graph_assistant.microsoft.auth.shutil.which", lambda _: None)
        auth = AzureCliAuth()
        assert auth.get_access_token() is None
        assert auth.get_current_identity() is None
