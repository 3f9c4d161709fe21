"""Text-to-speech integrations."""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import re
import wave
from dataclasses import dataclass

import requests

from aurix_voice.config import ElevenLabsConfig, InworldConfig
from aurix_voice.errors import SynthesisError

LOGGER = logging.getLogger(__name__)

INWORLD_TTS_URL = "https://api.inworld.ai/tts/v1/voice"
MAX_CHUNK_CHARS = 1900

_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")


def chunk_text(text: str, max_chunk_size: int = MAX_CHUNK_CHARS) -> list[str]:
    """Split text on sentence boundaries into chunks no longer than `max_chunk_size`."""
    if len(text) <= max_chunk_size:
        return [text]

    chunks: list[str] = []
    current: str = ""
    for sentence in _split_sentences(text, max_chunk_size):
        if len(current + sentence) <= max_chunk_size:
            current += sentence
            continue
        if current.strip():
            chunks.append(current.strip())
        current = sentence
    if current.strip():
        chunks.append(current.strip())
    return chunks or [text]


def _split_sentences(text: str, max_chunk_size: int) -> list[str]:
    """Sentences plus any unterminated tail, each at most `max_chunk_size` long."""
    pieces: list[str] = []
    end: int = 0
    for match in _SENTENCE_PATTERN.finditer(text):
        pieces.append(match.group())
        end = match.end()
    if end < len(text):
        pieces.append(text[end:])

    sentences: list[str] = []
    for piece in pieces:
        while len(piece) > max_chunk_size:
            cut: int = piece.rfind(" ", 0, max_chunk_size)
            if cut <= 0:
                cut = max_chunk_size
            sentences.append(piece[:cut])
            piece = piece[cut:]
        sentences.append(piece)
    return sentences


def parse_pcm_sample_rate(output_format: str) -> int:
    """Parse sample rate from ElevenLabs output format like `pcm_16000`."""
    try:
        _, sample_rate_text = output_format.split("_", maxsplit=1)
        return int(sample_rate_text)
    except (ValueError, TypeError):
        return 16000


def pcm_to_wav_bytes(
    pcm_bytes: bytes,
    *,
    sample_rate: int,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes into a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm_bytes)
    return buffer.getvalue()


def _describe_http_failure(provider: str, response: requests.Response) -> str:
    status: int = response.status_code
    if status == 401:
        return f"Invalid {provider} credentials. Please check your .env file."
    if status == 429:
        return f"{provider} API rate limit exceeded. Please try again later."
    if status == 400:
        return f"{provider} API bad request: {response.text}"
    return f"{provider} API error ({status}): {response.text}"


@dataclass(slots=True)
class InworldSpeechSynthesizer:
    """Synthesizes MP3 speech with the Inworld TTS API."""

    config: InworldConfig
    session: requests.Session | None = None
    temperature: float = 1.1

    def is_ready(self) -> bool:
        return bool(self.config.api_key)

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        """Generate speech audio from text without blocking the event loop."""
        return await asyncio.to_thread(
            self.synthesize_blocking, text, voice_id=voice_id, model_id=model_id
        )

    def synthesize_blocking(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        """Generate speech audio, one request per sentence-aligned chunk."""
        cleaned_text: str = text.strip()
        if not cleaned_text:
            raise SynthesisError("Cannot synthesize an empty response.")

        chunks: list[str] = chunk_text(cleaned_text)
        LOGGER.debug("Synthesizing %d chars in %d chunk(s).", len(cleaned_text), len(chunks))
        audio_parts: list[bytes] = [
            self._synthesize_chunk(
                chunk,
                voice_id=voice_id or self.config.default_voice,
                model_id=model_id or self.config.default_model,
            )
            for chunk in chunks
        ]
        audio: bytes = b"".join(audio_parts)
        LOGGER.info("Synthesized %d bytes of audio.", len(audio))
        return audio

    def _synthesize_chunk(self, chunk: str, *, voice_id: str, model_id: str) -> bytes:
        headers: dict[str, str] = {
            "Authorization": f"Basic {self.config.api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, object] = {
            "text": chunk,
            "voiceId": voice_id,
            "modelId": model_id,
            "audioConfig": {
                "audioEncoding": "MP3",
                "bitRate": 128000,
                "sampleRateHertz": 48000,
                "speakingRate": 1.0,
            },
            "temperature": self.temperature,
        }
        post = self.session.post if self.session is not None else requests.post
        try:
            response = post(
                INWORLD_TTS_URL,
                headers=headers,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as error:
            raise SynthesisError(f"Network error connecting to Inworld API: {error}") from error

        if not response.ok:
            raise SynthesisError(_describe_http_failure("Inworld", response))

        audio_content: str | None = response.json().get("audioContent")
        if not audio_content:
            raise SynthesisError("No audio content received from Inworld API")
        return base64.b64decode(audio_content)


@dataclass(slots=True)
class ElevenLabsSpeechSynthesizer:
    """Synthesizes speech with ElevenLabs and returns WAV bytes."""

    config: ElevenLabsConfig

    def is_ready(self) -> bool:
        return bool(self.config.api_key and self.config.voice_id)

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        return await asyncio.to_thread(
            self.synthesize_blocking, text, voice_id=voice_id, model_id=model_id
        )

    def synthesize_blocking(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        """Generate speech audio from text."""
        cleaned_text: str = text.strip()
        if not cleaned_text:
            raise SynthesisError("Cannot synthesize an empty response.")

        url: str = (
            f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id or self.config.voice_id}"
        )
        headers: dict[str, str] = {
            "xi-api-key": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/pcm",
        }
        payload: dict[str, object] = {
            "text": cleaned_text,
            "model_id": model_id or self.config.model_id,
            "voice_settings": {
                "stability": self.config.stability,
                "similarity_boost": self.config.similarity_boost,
            },
        }
        params: dict[str, str] = {"output_format": self.config.output_format}

        try:
            response = requests.post(
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as error:
            raise SynthesisError(f"Network error connecting to ElevenLabs API: {error}") from error
        if not response.ok:
            raise SynthesisError(_describe_http_failure("ElevenLabs", response))

        sample_rate: int = parse_pcm_sample_rate(self.config.output_format)
        return pcm_to_wav_bytes(response.content, sample_rate=sample_rate)
