"""Reply backends for the chat service."""

import logging
from typing import Protocol

import openai

from graph_assistant.agent.prompts import canned_reply
from graph_assistant.config import Settings
from graph_assistant.errors import ApiRequestError
from graph_assistant.llm import AzureOpenAIClient
from graph_assistant.microsoft.graph_client import GraphClient

logger = logging.getLogger(__name__)


class Responder(Protocol):
    """Turns the conversation so far into the assistant's next reply."""

    name: str

    def reply(self, messages: list[dict]) -> str:
        ...


class SimulatedResponder:
    """Keyword-matched canned replies; never fails."""

    name = "simulated"

    def reply(self, messages: list[dict]) -> str:
        last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        return canned_reply(last_user)


class EndpointResponder:
    """Passes the conversation to an external HTTP endpoint through the Graph client."""

    name = "endpoint"

    def __init__(self, client: GraphClient, endpoint: str) -> None:
        self.client = client
        self.endpoint = endpoint

    def reply(self, messages: list[dict]) -> str:
        result = self.client.request(self.endpoint, "POST", body={"messages": messages})
        if isinstance(result, str):
            return result
        if isinstance(result, dict):
            for key in ("reply", "content", "message", "text"):
                value = result.get(key)
                if isinstance(value, str) and value:
                    return value
        raise ApiRequestError(None, f"Chat endpoint {self.endpoint} returned no reply text")


class AzureOpenAIResponder:
    """Azure OpenAI deployment via the Responses API."""

    name = "azure_openai"

    def __init__(self, settings: Settings, llm: AzureOpenAIClient | None = None) -> None:
        self.llm = llm or AzureOpenAIClient(settings)

    def reply(self, messages: list[dict]) -> str:
        try:
            return self.llm.chat(messages=messages)
        except openai.APITimeoutError as e:
            raise ApiRequestError(None, "Azure OpenAI request timed out") from e
        except openai.APIStatusError as e:
            raise ApiRequestError(e.status_code, e.message) from e
        except openai.APIError as e:
            raise ApiRequestError(None, f"{type(e).__name__}: {e}") from e


def build_responder(settings: Settings, client: GraphClient) -> Responder:
    """Pick the backend configured by ``settings.chat_backend``."""
    if settings.chat_backend == "endpoint":
        if not settings.chat_endpoint:
            logger.warning("chat_backend=endpoint but no chat_endpoint configured; using simulated replies")
            return SimulatedResponder()
        return EndpointResponder(client, settings.chat_endpoint)
    if settings.chat_backend == "azure_openai":
        if not (settings.azure_openai_endpoint and settings.azure_openai_api_key):
            logger.warning("Azure OpenAI is not configured; using simulated replies")
            return SimulatedResponder()
        return AzureOpenAIResponder(settings)
    return SimulatedResponder()
