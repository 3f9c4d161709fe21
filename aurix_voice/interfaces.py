"""Protocol interfaces for assistant components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from aurix_voice.events import TranscriptEvent


class TranscriptSource(Protocol):
    """Streaming speech recognition session driven by voice-activity detection."""

    async def connect(self) -> None:
        """Open the session."""

    def events(self) -> AsyncIterator[TranscriptEvent]:
        """Return the event stream; each event is delivered once, without replay."""

    async def close(self) -> None:
        """Close the session and end the event stream."""


class AudioSink(Protocol):
    """Accepts raw PCM16 audio chunks from a microphone."""

    def send_audio(self, chunk: bytes) -> None:
        """Forward one chunk of audio."""


class ChatResponder(Protocol):
    """Produces one assistant reply per user utterance, keeping history."""

    def is_ready(self) -> bool:
        """Return True when the responder can accept messages."""

    def set_system_prompt(self, prompt: str) -> None:
        """Replace the system prompt used for future replies."""

    async def send_message(self, text: str) -> str:
        """Return the assistant reply to a user utterance."""


class SpeechSynthesizer(Protocol):
    """Converts text into encoded audio bytes."""

    def is_ready(self) -> bool:
        """Return True when synthesis credentials are configured."""

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        """Return encoded audio for the provided text."""


class PlaybackWaiter(Protocol):
    """Plays synthesized audio and reports when playback has finished."""

    async def play(self, audio: bytes) -> None:
        """Play audio, returning once playback is complete."""
