"""Tests for the chat service and responders."""

import httpx
import openai
import pytest

from conftest import request_json
from graph_assistant.agent import (
    AzureOpenAIResponder,
    ChatService,
    EndpointResponder,
    SimulatedResponder,
    build_responder,
)
from graph_assistant.agent.prompts import DEFAULT_REPLY, build_system_message, canned_reply
from graph_assistant.errors import ApiRequestError, InputValidationError
from graph_assistant.memory import ConversationSession, Role


class FailingResponder:
    name = "endpoint"

    def __init__(self, error):
        self.error = error
        self.calls = 0

    def reply(self, messages):
        self.calls += 1
        raise self.error


class FakeLLM:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def chat(self, messages, **kwargs):
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def session():
    return ConversationSession.create(system_prompt="You are a test assistant.")


class TestChatService:
    """SUT: ChatService.send"""

    def test_simulated_reply_appended(self, app_context, session):
        service = ChatService(app_context, SimulatedResponder())
        reply = service.send(session, "  what meetings do I have?  ")

        assert len(session) == 3
        messages = session.get_messages()
        assert messages[1].role is Role.USER
        assert messages[1].content == "what meetings do I have?"
        assert reply.role is Role.ASSISTANT
        assert "/insights meetings" in reply.content
        assert reply.metadata["source"] == "simulated"
        assert app_context.usage.get("chat").count == 1

    def test_falls_back_when_backend_fails(self, app_context, session):
        sleeps = []
        backend = FailingResponder(ApiRequestError(503, "Service unavailable"))
        service = ChatService(app_context, backend, sleep=sleeps.append)

        reply = service.send(session, "hello")

        assert backend.calls == 3
        assert sleeps == [0, 0]
        assert reply.metadata["source"] == "simulated"
        assert reply.content == canned_reply("hello")
        assert app_context.usage.get("chat").error_count == 1
        assert app_context.logger.entries(category="Chat", level="Warning")

    def test_fatal_backend_error_falls_back_without_retry(self, app_context, session):
        backend = FailingResponder(ApiRequestError(400, "Bad request"))
        reply = ChatService(app_context, backend, sleep=lambda _: None).send(session, "hello")

        assert backend.calls == 1
        assert reply.metadata["source"] == "simulated"

    def test_empty_input_rejected(self, app_context, session):
        service = ChatService(app_context, SimulatedResponder())
        with pytest.raises(InputValidationError):
            service.send(session, "   ")
        assert len(session) == 1

    def test_oversized_input_rejected(self, app_context, session):
        app_context.settings.max_input_length = 10
        service = ChatService(app_context, SimulatedResponder())
        with pytest.raises(InputValidationError):
            service.send(session, "x" * 11)
        assert len(session) == 1


class TestPrompts:
    def test_canned_reply_keywords(self):
        assert "/insights emails" in canned_reply("Any new EMAIL?")
        assert "/export" in canned_reply("how do I export this")
        assert canned_reply("hi there").startswith("Hello")

    def test_short_keywords_match_whole_words(self):
        assert canned_reply("this is unrelated") == DEFAULT_REPLY

    def test_system_message(self):
        connected = build_system_message("Base prompt.", ms_connected=True)
        offline = build_system_message("Base prompt.", ms_connected=False)
        assert connected.startswith("Base prompt.")
        assert "Today's date:" in connected
        assert "access to the user's Microsoft 365 account" in connected
        assert "az login" in offline


class TestResponders:
    """SUT: endpoint and Azure OpenAI responders"""

    def test_endpoint_responder(self, graph_client, graph_stub):
        graph_stub.json_route("/reply", {"reply": "Hi there"})
        responder = EndpointResponder(graph_client, "https://chat.example.com/reply")

        messages = [{"role": "user", "content": "hello"}]
        assert responder.reply(messages) == "Hi there"
        assert request_json(graph_stub.requests[0]) == {"messages": messages}

    def test_endpoint_without_reply_text(self, graph_client, graph_stub):
        graph_stub.json_route("/reply", {"status": "ok"})
        with pytest.raises(ApiRequestError):
            EndpointResponder(graph_client, "https://chat.example.com/reply").reply([])

    def test_azure_openai_reply(self, settings):
        responder = AzureOpenAIResponder(settings, llm=FakeLLM(result="From the model"))
        assert responder.reply([{"role": "user", "content": "hi"}]) == "From the model"

    def test_azure_openai_timeout_mapped(self, settings):
        error = openai.APITimeoutError(request=httpx.Request("POST", "https://example.openai.azure.com"))
        responder = AzureOpenAIResponder(settings, llm=FakeLLM(error=error))

        with pytest.raises(ApiRequestError) as exc_info:
            responder.reply([])
        assert exc_info.value.status_code is None
        assert "timed out" in str(exc_info.value)

    def test_build_responder(self, settings, graph_client):
        assert isinstance(build_responder(settings, graph_client), SimulatedResponder)

        settings.chat_backend = "endpoint"
        assert isinstance(build_responder(settings, graph_client), SimulatedResponder)
        settings.chat_endpoint = "https://chat.example.com/reply"
        assert isinstance(build_responder(settings, graph_client), EndpointResponder)

        settings.chat_backend = "azure_openai"
        assert isinstance(build_responder(settings, graph_client), SimulatedResponder)
