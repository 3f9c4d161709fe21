"""Batch Whisper transcription of recorded audio clips."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aurix_voice.config import TranscriptionConfig
from aurix_voice.errors import TranscriptionError
from aurix_voice.tts import pcm_to_wav_bytes

LOGGER = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024
SMALL_CLIP_BYTES = 1000


@dataclass(slots=True, frozen=True)
class TranscriptionResult:
    """Text of one clip, with the language when the API reports it."""

    text: str
    language: str | None = None


@dataclass(slots=True)
class OpenAIBatchTranscriber:
    """Transcribes whole clips through the `audio.transcriptions` endpoint.

    Works against OpenAI or any OpenAI-compatible host such as Groq. Unlike the
    realtime source this needs the complete recording up front.
    """

    config: TranscriptionConfig
    client: Any = None
    logger: logging.Logger = LOGGER

    def __post_init__(self) -> None:
        """Create the client unless one was injected."""
        if self.client is not None:
            return
        try:
            from openai import OpenAI
        except ImportError as error:
            raise RuntimeError("openai package is required for transcription.") from error

        self.client = OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )

    def is_ready(self) -> bool:
        return self.client is not None

    def transcribe_file(
        self,
        path: Path,
        *,
        language: str | None = None,
        prompt: str | None = None,
        temperature: float = 0.0,
    ) -> TranscriptionResult:
        """Transcribe an audio file (mp3, mp4, m4a, wav, webm, ...)."""
        if not path.exists():
            raise TranscriptionError(f"Audio file not found: {path}")
        audio: bytes = path.read_bytes()
        self.logger.debug("Transcribing %s (%d bytes).", path, len(audio))
        buffer = io.BytesIO(audio)
        buffer.name = path.name  # type: ignore[attr-defined]
        return self._transcribe(
            buffer,
            size=len(audio),
            language=language,
            prompt=prompt,
            temperature=temperature,
        )

    def transcribe_pcm(
        self,
        pcm_audio: bytes,
        *,
        sample_rate: int,
        language: str | None = None,
        prompt: str | None = None,
    ) -> TranscriptionResult:
        """Transcribe raw mono PCM16 audio, wrapped as WAV for upload."""
        if not pcm_audio:
            return TranscriptionResult(text="")
        wav_bytes: bytes = pcm_to_wav_bytes(pcm_audio, sample_rate=sample_rate)
        buffer = io.BytesIO(wav_bytes)
        buffer.name = "recording.wav"  # type: ignore[attr-defined]
        return self._transcribe(buffer, size=len(wav_bytes), language=language, prompt=prompt)

    async def transcribe_file_async(self, path: Path, **options: Any) -> TranscriptionResult:
        """Run `transcribe_file` in a worker thread."""
        return await asyncio.to_thread(self.transcribe_file, path, **options)

    def _transcribe(
        self,
        buffer: io.BytesIO,
        *,
        size: int,
        language: str | None,
        prompt: str | None,
        temperature: float = 0.0,
    ) -> TranscriptionResult:
        if size == 0:
            raise TranscriptionError("Audio file is empty")
        if size > MAX_UPLOAD_BYTES:
            raise TranscriptionError("Audio file too large (max 25MB). Record shorter audio.")
        if size < SMALL_CLIP_BYTES:
            self.logger.warning("Audio clip is very small; transcription may be inaccurate.")

        request: dict[str, Any] = {
            "model": self.config.model,
            "file": buffer,
            "temperature": temperature,
        }
        resolved_language: str | None = language or self.config.language
        if resolved_language:
            request["language"] = resolved_language
        if prompt:
            request["prompt"] = prompt

        try:
            result: Any = self.client.audio.transcriptions.create(**request)
        except Exception as error:
            raise TranscriptionError(_describe_failure(error)) from error

        text: str | None = getattr(result, "text", None)
        cleaned: str = text.strip() if text else ""
        self.logger.info("Transcribed %d characters.", len(cleaned))
        return TranscriptionResult(text=cleaned, language=getattr(result, "language", None))


def _describe_failure(error: Exception) -> str:
    """Map API failures onto readable reasons."""
    status: Any = getattr(error, "status_code", None)
    if status == 401:
        return "Invalid transcription API key. Please check your .env file."
    if status == 429:
        return "Transcription API rate limit exceeded. Please try again later."
    if status == 500:
        return "Transcription API server error. Please try again later."
    return f"Transcription failed: {error}"
