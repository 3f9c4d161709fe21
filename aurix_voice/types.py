"""Domain types shared across the assistant."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class TurnState(str, Enum):
    """Turn-taking state of a conversation session."""

    IDLE = "idle"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"
    RESPONDING = "responding"
    SYNTHESIZING = "synthesizing"
    SPEAKING = "speaking"


class ConversationMode(str, Enum):
    """Whether a session keeps going after its first turn."""

    CONTINUOUS = "continuous"
    SINGLE_TURN = "single-turn"

    @classmethod
    def parse(cls, value: str) -> "ConversationMode":
        """Parse a mode name, accepting underscores as separators."""
        normalized: str = value.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError as error:
            choices: str = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown conversation mode '{value}'. Available: {choices}") from error


class RecordingRequest(str, Enum):
    """Outcome of a manual recording trigger."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class ConversationOptions:
    """Options supplied when a conversation starts."""

    mode: ConversationMode = ConversationMode.CONTINUOUS
    system_prompt: str | None = None
    voice_id: str | None = None
    model_id: str | None = None


@dataclass(slots=True, frozen=True)
class ConversationStatus:
    """Snapshot of a conversation session for the UI boundary."""

    is_active: bool
    current_state: TurnState
    mode: ConversationMode
    processing_response: bool


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One entry of chat history."""

    role: str
    content: str
    timestamp: datetime

    @classmethod
    def now(cls, role: str, content: str) -> "ChatMessage":
        """Build a message stamped with the current UTC time."""
        return cls(role=role, content=content, timestamp=datetime.now(timezone.utc))

    def to_api(self) -> dict[str, str]:
        """Render the message in chat-completions wire format."""
        return {"role": self.role, "content": self.content}
