"""OpenAI Realtime API transcript source."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import websockets

from aurix_voice.config import RealtimeConfig
from aurix_voice.errors import TranscriptSourceError
from aurix_voice.events import (
    SpeechStarted,
    SpeechStopped,
    TranscriptError,
    TranscriptEvent,
    Transcription,
)

LOGGER = logging.getLogger(__name__)

TRANSCRIPTION_INSTRUCTIONS = (
    "You are a speech-to-text transcription assistant. Transcribe all audio in English. "
    "Only output the transcribed text, nothing else."
)
IGNORED_ERROR_CODES = frozenset({"input_audio_buffer_commit_empty"})

_CLOSED = object()


def build_session_update() -> dict[str, Any]:
    """Configure the session for whisper transcription with server-side VAD."""
    return {
        "type": "session.update",
        "session": {
            "modalities": ["text"],
            "instructions": TRANSCRIPTION_INSTRUCTIONS,
            "input_audio_format": "pcm16",
            "input_audio_transcription": {"model": "whisper-1", "language": "en"},
            "turn_detection": {
                "type": "server_vad",
                "threshold": 0.3,
                "prefix_padding_ms": 300,
                "silence_duration_ms": 700,
            },
            "temperature": 0.6,
            "max_response_output_tokens": 4096,
        },
    }


@dataclass(slots=True)
class RealtimeTranscriptSource:
    """Streams microphone audio to OpenAI and yields transcript events."""

    config: RealtimeConfig
    logger: logging.Logger = LOGGER
    _ws: Any = field(init=False, default=None, repr=False)
    _events: asyncio.Queue[Any] = field(init=False, default_factory=asyncio.Queue, repr=False)
    _outbox: asyncio.Queue[dict[str, Any]] = field(
        init=False, default_factory=asyncio.Queue, repr=False
    )
    _tasks: list[asyncio.Task[None]] = field(init=False, default_factory=list, repr=False)
    _speech_started_at: float | None = field(init=False, default=None, repr=False)
    _speech_stopped_at: float | None = field(init=False, default=None, repr=False)

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        """Open the websocket and configure transcription."""
        url: str = f"{self.config.url}?model={self.config.model}"
        headers: dict[str, str] = {
            "Authorization": f"Bearer {self.config.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        self.logger.info("Connecting to OpenAI Realtime API...")
        try:
            self._ws = await websockets.connect(url, additional_headers=headers, max_size=None)
        except (OSError, websockets.WebSocketException) as error:
            raise TranscriptSourceError(f"Failed to connect to Realtime API: {error}") from error

        await self._ws.send(json.dumps(build_session_update()))
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._receiver()),
            loop.create_task(self._sender()),
        ]
        self.logger.info("Connected to OpenAI Realtime API.")

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        """Yield transcript events until the session closes."""
        while True:
            item: Any = await self._events.get()
            if item is _CLOSED:
                return
            yield item

    def send_audio(self, chunk: bytes) -> None:
        """Queue a PCM16 chunk for upload; dropped while disconnected."""
        if self._ws is None:
            return
        self._outbox.put_nowait(
            {
                "type": "input_audio_buffer.append",
                "audio": base64.b64encode(chunk).decode("ascii"),
            }
        )

    def commit_audio(self) -> None:
        if self._ws is not None:
            self._outbox.put_nowait({"type": "input_audio_buffer.commit"})

    def clear_audio_buffer(self) -> None:
        if self._ws is not None:
            self._outbox.put_nowait({"type": "input_audio_buffer.clear"})

    async def close(self) -> None:
        """Disconnect and end the event stream."""
        ws, self._ws = self._ws, None
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if ws is not None:
            self.logger.info("Disconnecting from OpenAI Realtime API...")
            await ws.close()
        self._events.put_nowait(_CLOSED)

    async def _sender(self) -> None:
        while True:
            event: dict[str, Any] = await self._outbox.get()
            if self._ws is None:
                continue
            await self._ws.send(json.dumps(event))

    async def _receiver(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    event: dict[str, Any] = json.loads(raw)
                except json.JSONDecodeError as error:
                    self.logger.warning("Error parsing server message: %s", error)
                    continue
                self.handle_server_event(event)
        except websockets.ConnectionClosed as error:
            self.logger.info("Realtime connection closed: %s", error)
            self._events.put_nowait(TranscriptError(error=TranscriptSourceError(str(error))))
        finally:
            self._ws = None

    def handle_server_event(self, event: dict[str, Any]) -> None:
        """Translate one server event into zero or one transcript events."""
        event_type: str = event.get("type", "")
        loop_time: float = asyncio.get_running_loop().time()

        if event_type == "input_audio_buffer.speech_started":
            self._speech_started_at = loop_time
            self.logger.debug("Speech started (VAD).")
            self._events.put_nowait(SpeechStarted())
        elif event_type == "input_audio_buffer.speech_stopped":
            self._speech_stopped_at = loop_time
            if self._speech_started_at is not None:
                self.logger.debug(
                    "Speech stopped (VAD) after %.2f seconds.", loop_time - self._speech_started_at
                )
            self._events.put_nowait(SpeechStopped())
            self.commit_audio()
        elif event_type == "conversation.item.input_audio_transcription.completed":
            transcript: str = event.get("transcript") or ""
            if self._speech_stopped_at is not None:
                self.logger.debug(
                    "Transcription completed %.2f seconds after speech stopped.",
                    loop_time - self._speech_stopped_at,
                )
            if transcript.strip():
                self._events.put_nowait(Transcription(text=transcript))
            self._speech_started_at = None
            self._speech_stopped_at = None
        elif event_type == "conversation.item.input_audio_transcription.failed":
            self._events.put_nowait(TranscriptError(error=_error_message(event)))
        elif event_type == "error":
            error: dict[str, Any] = event.get("error") or {}
            if error.get("code") in IGNORED_ERROR_CODES:
                return
            self.logger.error("Realtime server error: %s", error)
            self._events.put_nowait(TranscriptError(error=_error_message(event)))
        else:
            self.logger.debug("Ignoring realtime event %s", event_type)


def _error_message(event: dict[str, Any]) -> str:
    error: Any = event.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "Unknown error")
    return str(error or "Unknown error")
