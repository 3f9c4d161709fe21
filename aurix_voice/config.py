"""Environment-driven configuration models."""

from __future__ import annotations

import os
from dataclasses import dataclass

from aurix_voice.types import ConversationMode

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful voice assistant. Provide clear, concise, and friendly responses."
)
DEFAULT_CHAT_BASE_URL = "https://api.groq.com/openai/v1"
TTS_PROVIDERS = ("inworld", "elevenlabs")


def _get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable or the provided default value."""
    value: str | None = os.getenv(name)
    if value is None:
        return default
    stripped: str = value.strip()
    return stripped if stripped else default


def _require_env(name: str, *fallbacks: str) -> str:
    """Return the first set variable among `name` and `fallbacks`, or raise."""
    for candidate in (name, *fallbacks):
        value: str | None = _get_env(candidate)
        if value is not None:
            return value
    raise ValueError(f"Missing required environment variable: {name}")


def _get_env_float(name: str, default: float) -> float:
    """Return an environment variable parsed as float."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return float(value)


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable parsed as int."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return int(value)


@dataclass(slots=True, frozen=True)
class ChatConfig:
    """Chat-completions settings for any OpenAI-compatible endpoint."""

    api_key: str
    base_url: str | None
    model: str
    temperature: float
    max_tokens: int
    max_history_length: int
    timeout_seconds: float
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """Load chat settings, defaulting to Groq's hosted Llama model."""
        return cls(
            api_key=_require_env("CHAT_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY"),
            base_url=_get_env("CHAT_BASE_URL", DEFAULT_CHAT_BASE_URL),
            model=_get_env("CHAT_MODEL", "llama-3.3-70b-versatile") or "llama-3.3-70b-versatile",
            temperature=_get_env_float("CHAT_TEMPERATURE", 0.7),
            max_tokens=_get_env_int("CHAT_MAX_TOKENS", 1000),
            max_history_length=_get_env_int("CHAT_MAX_HISTORY", 20),
            timeout_seconds=_get_env_float("CHAT_TIMEOUT_SECONDS", 45.0),
            system_prompt=_get_env("ASSISTANT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)
            or DEFAULT_SYSTEM_PROMPT,
        )


@dataclass(slots=True, frozen=True)
class RealtimeConfig:
    """OpenAI Realtime transcription session settings."""

    api_key: str
    model: str
    sample_rate: int
    url: str = "wss://api.openai.com/v1/realtime"

    @classmethod
    def from_env(cls) -> "RealtimeConfig":
        """Load realtime transcription settings from environment variables."""
        return cls(
            api_key=_require_env("OPENAI_API_KEY"),
            model=_get_env("OPENAI_REALTIME_MODEL", "gpt-4o-realtime-preview-2024-12-17")
            or "gpt-4o-realtime-preview-2024-12-17",
            sample_rate=_get_env_int("REALTIME_SAMPLE_RATE", 24000),
        )


@dataclass(slots=True, frozen=True)
class TranscriptionConfig:
    """Batch Whisper transcription settings for recorded clips."""

    api_key: str
    base_url: str | None
    model: str
    language: str | None
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> "TranscriptionConfig":
        """Load batch transcription settings, defaulting to OpenAI `whisper-1`."""
        return cls(
            api_key=_require_env("TRANSCRIPTION_API_KEY", "OPENAI_API_KEY"),
            base_url=_get_env("TRANSCRIPTION_BASE_URL"),
            model=_get_env("TRANSCRIPTION_MODEL", "whisper-1") or "whisper-1",
            language=_get_env("TRANSCRIPTION_LANGUAGE", "en"),
            timeout_seconds=_get_env_float("TRANSCRIPTION_TIMEOUT_SECONDS", 45.0),
        )


@dataclass(slots=True, frozen=True)
class InworldConfig:
    """Inworld text-to-speech settings."""

    api_key: str
    default_voice: str
    default_model: str
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> "InworldConfig":
        """Load Inworld settings; the key is the base64 Basic credential."""
        return cls(
            api_key=_require_env("INWORLD_API_KEY"),
            default_voice=_get_env("INWORLD_DEFAULT_VOICE", "inworld-tts-1-default")
            or "inworld-tts-1-default",
            default_model=_get_env("INWORLD_DEFAULT_MODEL", "inworld-tts-1") or "inworld-tts-1",
            timeout_seconds=_get_env_float("INWORLD_TIMEOUT_SECONDS", 45.0),
        )


@dataclass(slots=True, frozen=True)
class ElevenLabsConfig:
    """ElevenLabs synthesis settings."""

    api_key: str
    voice_id: str
    model_id: str
    output_format: str
    stability: float
    similarity_boost: float
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> "ElevenLabsConfig":
        """Load ElevenLabs settings from environment variables."""
        return cls(
            api_key=_require_env("ELEVENLABS_API_KEY"),
            voice_id=_require_env("ELEVENLABS_VOICE_ID"),
            model_id=_get_env("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2")
            or "eleven_multilingual_v2",
            output_format=_get_env("ELEVENLABS_OUTPUT_FORMAT", "pcm_16000") or "pcm_16000",
            stability=_get_env_float("ELEVENLABS_STABILITY", 0.45),
            similarity_boost=_get_env_float("ELEVENLABS_SIMILARITY_BOOST", 0.75),
            timeout_seconds=_get_env_float("ELEVENLABS_TIMEOUT_SECONDS", 45.0),
        )


@dataclass(slots=True, frozen=True)
class ConversationConfig:
    """Runtime settings for turn orchestration."""

    mode: ConversationMode
    collection_window_seconds: float
    grace_max_seconds: float
    grace_poll_seconds: float
    min_transcript_chars: int
    words_per_second: float
    tts_provider: str
    log_level: str

    @classmethod
    def from_env(cls) -> "ConversationConfig":
        """Load orchestration settings from environment variables."""
        tts_provider: str = (_get_env("ASSISTANT_TTS_PROVIDER", "inworld") or "inworld").lower()
        if tts_provider not in TTS_PROVIDERS:
            raise ValueError(
                f"Unknown TTS provider '{tts_provider}'. Available: {', '.join(TTS_PROVIDERS)}"
            )
        return cls(
            mode=ConversationMode.parse(_get_env("ASSISTANT_MODE", "continuous") or "continuous"),
            collection_window_seconds=_get_env_float("ASSISTANT_WINDOW_SECONDS", 7.0),
            grace_max_seconds=_get_env_float("ASSISTANT_GRACE_SECONDS", 3.0),
            grace_poll_seconds=_get_env_float("ASSISTANT_GRACE_POLL_SECONDS", 0.1),
            min_transcript_chars=_get_env_int("ASSISTANT_MIN_TRANSCRIPT_CHARS", 3),
            words_per_second=_get_env_float("ASSISTANT_WORDS_PER_SECOND", 2.5),
            tts_provider=tts_provider,
            log_level=_get_env("ASSISTANT_LOG_LEVEL", "INFO") or "INFO",
        )
