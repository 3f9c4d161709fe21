"""Typed events flowing into and out of the turn orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import ClassVar, Union

from aurix_voice.types import ConversationMode, TurnState

LOGGER = logging.getLogger(__name__)


# Inbound events produced by a transcript source.


@dataclass(slots=True, frozen=True)
class SpeechStarted:
    """Voice activity detection saw the start of speech."""


@dataclass(slots=True, frozen=True)
class SpeechStopped:
    """Voice activity detection saw the end of speech."""


@dataclass(slots=True, frozen=True)
class Transcription:
    """A completed transcript fragment."""

    text: str


@dataclass(slots=True, frozen=True)
class TranscriptError:
    """The transcript source reported a failure."""

    error: BaseException | str

    @property
    def reason(self) -> str:
        """Return a readable failure reason."""
        return str(self.error) or type(self.error).__name__


TranscriptEvent = Union[SpeechStarted, SpeechStopped, Transcription, TranscriptError]


# Outward events emitted by the orchestrator.


@dataclass(slots=True, frozen=True)
class Started:
    name: ClassVar[str] = "started"
    mode: ConversationMode


@dataclass(slots=True, frozen=True)
class ModeChanged:
    name: ClassVar[str] = "mode_changed"
    mode: ConversationMode


@dataclass(slots=True, frozen=True)
class StateChanged:
    name: ClassVar[str] = "state_changed"
    state: TurnState


@dataclass(slots=True, frozen=True)
class UserSpoke:
    name: ClassVar[str] = "user_spoke"
    text: str


@dataclass(slots=True, frozen=True)
class AIResponse:
    name: ClassVar[str] = "ai_response"
    text: str


@dataclass(slots=True, frozen=True)
class AIAudio:
    name: ClassVar[str] = "ai_audio"
    audio: bytes = field(repr=False)


@dataclass(slots=True, frozen=True)
class ConversationError:
    name: ClassVar[str] = "error"
    reason: str


@dataclass(slots=True, frozen=True)
class TurnComplete:
    name: ClassVar[str] = "turn_complete"


@dataclass(slots=True, frozen=True)
class NoSpeechDetected:
    name: ClassVar[str] = "no_speech_detected"


@dataclass(slots=True, frozen=True)
class Stopped:
    name: ClassVar[str] = "stopped"


ConversationEvent = Union[
    Started,
    ModeChanged,
    StateChanged,
    UserSpoke,
    AIResponse,
    AIAudio,
    ConversationError,
    TurnComplete,
    NoSpeechDetected,
    Stopped,
]

EventListener = Callable[[ConversationEvent], None]


@dataclass(slots=True)
class EventBus:
    """Delivers outward events synchronously to subscribed listeners."""

    _listeners: list[EventListener] = field(default_factory=list)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        """Remove every listener."""
        self._listeners.clear()

    def emit(self, event: ConversationEvent) -> None:
        """Deliver an event to every listener in subscription order."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                LOGGER.exception("Listener failed while handling %s event.", event.name)
