"""Conversational agent: chat service, responders, prompts and orchestrator."""

from .chat import ChatService
from .orchestrator import AgentOrchestrator
from .responders import (
    AzureOpenAIResponder,
    EndpointResponder,
    Responder,
    SimulatedResponder,
    build_responder,
)

__all__ = [
    "AgentOrchestrator",
    "AzureOpenAIResponder",
    "ChatService",
    "EndpointResponder",
    "Responder",
    "SimulatedResponder",
    "build_responder",
]
