"""Chat service - appends user input and the assistant's reply to a session."""

import time
from collections.abc import Callable

from graph_assistant.agent.responders import Responder, SimulatedResponder
from graph_assistant.errors import AssistantError, InputValidationError
from graph_assistant.memory.session import ConversationSession, Message, Role
from graph_assistant.resilience import RetryPolicy, invoke_with_policy
from graph_assistant.state import AppContext

LOG_CATEGORY = "Chat"


class ChatService:
    """
    Handles a single chat turn.

    The responder is called through the retry wrapper. If it still fails,
    the simulated responder answers instead so the turn always completes.
    """

    def __init__(
        self,
        context: AppContext,
        responder: Responder,
        fallback: Responder | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.context = context
        self.log = context.logger
        self.responder = responder
        self.fallback = fallback or SimulatedResponder()
        self.policy = RetryPolicy.from_settings(context.settings)
        self._sleep = sleep

    def validate_input(self, text: str) -> str:
        text = text.strip()
        if not text:
            raise InputValidationError("Message is empty")
        limit = self.context.settings.max_input_length
        if len(text) > limit:
            raise InputValidationError(f"Message is {len(text)} characters; the limit is {limit}")
        return text

    def send(self, session: ConversationSession, text: str) -> Message:
        """
        Process a user message and return the assistant's reply.

        Args:
            session: Conversation to append to
            text: The user's message

        Returns:
            The appended assistant message
        """
        text = self.validate_input(text)
        started = time.perf_counter()
        session.add_message(Role.USER, text)
        history = session.to_chat_messages()

        source = self.responder.name
        failed = False
        try:
            reply = invoke_with_policy(
                lambda: self.responder.reply(history),
                "chat",
                self.policy,
                self.log,
                context={"session_id": session.id, "backend": source},
                sleep=self._sleep,
            )
        except AssistantError as e:
            failed = True
            self.log.warning(
                LOG_CATEGORY,
                f"{source} backend unavailable, using simulated reply: {e}",
                session_id=session.id,
            )
            source = self.fallback.name
            reply = self.fallback.reply(history)

        duration = time.perf_counter() - started
        message = session.add_message(
            Role.ASSISTANT,
            reply,
            metadata={"source": source, "duration_ms": round(duration * 1000)},
        )
        self.context.usage.record("chat", duration, error=failed)
        self.log.verbose(
            LOG_CATEGORY,
            f"Replied in session {session.id}",
            session_id=session.id,
            source=source,
            messages=len(session),
        )
        return message
