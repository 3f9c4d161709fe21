"""Chat-completion responder with bounded conversation history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from aurix_voice.config import ChatConfig
from aurix_voice.errors import ChatError
from aurix_voice.types import ChatMessage

LOGGER = logging.getLogger(__name__)

FALLBACK_REPLY = "I apologize, but I could not generate a response."


@dataclass(slots=True)
class ConversationHistory:
    """Ordered chat messages, with the system prompt pinned first."""

    system_prompt: str
    messages: list[ChatMessage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.messages:
            self.messages.append(ChatMessage.now("system", self.system_prompt))

    def add_user(self, content: str) -> None:
        self.messages.append(ChatMessage.now("user", content))

    def add_assistant(self, content: str) -> None:
        self.messages.append(ChatMessage.now("assistant", content))

    def set_system_prompt(self, prompt: str) -> None:
        """Replace the system message, or insert one at the front."""
        self.system_prompt = prompt
        system_message = ChatMessage.now("system", prompt)
        for index, message in enumerate(self.messages):
            if message.role == "system":
                self.messages[index] = system_message
                return
        self.messages.insert(0, system_message)

    def clear(self) -> None:
        """Drop every message except the system prompt."""
        self.messages = [message for message in self.messages if message.role == "system"][:1]

    def trim(self, max_length: int) -> None:
        """Keep the system message plus the newest messages up to `max_length`."""
        if len(self.messages) <= max_length:
            return
        head: ChatMessage = self.messages[0]
        recent: list[ChatMessage] = self.messages[-(max_length - 1) :] if max_length > 1 else []
        self.messages = [head, *recent]
        LOGGER.debug("History trimmed to %d messages.", len(self.messages))

    def to_api(self) -> list[dict[str, str]]:
        return [message.to_api() for message in self.messages]

    def summary(self) -> dict[str, int]:
        """Count messages by role."""
        return {
            "total_messages": len(self.messages),
            "user_messages": sum(1 for message in self.messages if message.role == "user"),
            "assistant_messages": sum(
                1 for message in self.messages if message.role == "assistant"
            ),
        }


@dataclass(slots=True)
class OpenAIChatResponder:
    """Answers user utterances with an OpenAI-compatible chat-completions API."""

    config: ChatConfig
    client: Any = None
    history: ConversationHistory = field(init=False)

    def __post_init__(self) -> None:
        """Create the async client unless one was injected."""
        self.history = ConversationHistory(system_prompt=self.config.system_prompt)
        if self.client is not None:
            return
        try:
            from openai import AsyncOpenAI
        except ImportError as error:
            raise RuntimeError("openai package is required for chat responses.") from error

        self.client = AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )
        LOGGER.info("Chat responder initialized with %s", self.config.model)

    def is_ready(self) -> bool:
        return self.client is not None

    def set_system_prompt(self, prompt: str) -> None:
        self.history.set_system_prompt(prompt)
        LOGGER.info("System prompt updated.")

    def clear_history(self) -> None:
        self.history.clear()
        LOGGER.info("Conversation history cleared.")

    async def send_message(self, text: str) -> str:
        """Send one user utterance and return the assistant reply."""
        return await self._send(text, allow_reset=True)

    async def _send(self, text: str, *, allow_reset: bool) -> str:
        self.history.add_user(text)
        self.history.trim(self.config.max_history_length)
        LOGGER.debug("Sending %d messages to %s", len(self.history.messages), self.config.model)

        try:
            completion: Any = await self.client.chat.completions.create(
                model=self.config.model,
                messages=self.history.to_api(),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as error:
            if allow_reset and _error_code(error) == "context_length_exceeded":
                LOGGER.warning("Context length exceeded; clearing history and retrying.")
                self.history.clear()
                return await self._send(text, allow_reset=False)
            raise ChatError(_describe_failure(error)) from error

        reply: str = self._extract_text(completion)
        self.history.add_assistant(reply)
        usage: Any = getattr(completion, "usage", None)
        if usage is not None:
            LOGGER.debug("Tokens used: %s", usage)
        return reply

    def _extract_text(self, completion: Any) -> str:
        choices: list[Any] = getattr(completion, "choices", None) or []
        if not choices:
            return FALLBACK_REPLY
        message: Any = getattr(choices[0], "message", None)
        content: str | None = getattr(message, "content", None)
        return content.strip() if content and content.strip() else FALLBACK_REPLY


def _error_code(error: Exception) -> str | None:
    code: Any = getattr(error, "code", None)
    return code if isinstance(code, str) else None


def _describe_failure(error: Exception) -> str:
    """Map API failures onto readable reasons."""
    status: Any = getattr(error, "status_code", None)
    if status == 401:
        return "Invalid chat API key. Please check your .env file."
    if status == 429:
        return "Chat API rate limit exceeded. Please try again later."
    if status == 400:
        return f"Invalid request: {error}"
    return f"Chat error: {error}"
