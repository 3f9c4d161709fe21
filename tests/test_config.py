"""Tests for environment-driven configuration."""

import pytest

from aurix_voice.config import (
    DEFAULT_CHAT_BASE_URL,
    DEFAULT_SYSTEM_PROMPT,
    ChatConfig,
    ConversationConfig,
    InworldConfig,
    TranscriptionConfig,
)
from aurix_voice.types import ConversationMode

ENV_NAMES = (
    "CHAT_API_KEY",
    "GROQ_API_KEY",
    "OPENAI_API_KEY",
    "CHAT_BASE_URL",
    "CHAT_MODEL",
    "ASSISTANT_SYSTEM_PROMPT",
    "ASSISTANT_MODE",
    "ASSISTANT_TTS_PROVIDER",
    "ASSISTANT_WINDOW_SECONDS",
    "INWORLD_API_KEY",
    "TRANSCRIPTION_API_KEY",
    "TRANSCRIPTION_BASE_URL",
    "TRANSCRIPTION_MODEL",
    "TRANSCRIPTION_LANGUAGE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_chat_config_falls_back_to_groq_key(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("ASSISTANT_SYSTEM_PROMPT", "   ")

    config = ChatConfig.from_env()

    assert config.api_key == "gsk-test"
    assert config.base_url == DEFAULT_CHAT_BASE_URL
    assert config.model == "llama-3.3-70b-versatile"
    assert config.system_prompt == DEFAULT_SYSTEM_PROMPT


def test_chat_config_requires_a_key():
    with pytest.raises(ValueError, match="CHAT_API_KEY"):
        ChatConfig.from_env()


def test_conversation_config_defaults():
    config = ConversationConfig.from_env()

    assert config.mode is ConversationMode.CONTINUOUS
    assert config.collection_window_seconds == 7.0
    assert config.grace_max_seconds == 3.0
    assert config.tts_provider == "inworld"


def test_conversation_config_overrides(monkeypatch):
    monkeypatch.setenv("ASSISTANT_MODE", "single_turn")
    monkeypatch.setenv("ASSISTANT_WINDOW_SECONDS", "4.5")
    monkeypatch.setenv("ASSISTANT_TTS_PROVIDER", "ElevenLabs")

    config = ConversationConfig.from_env()

    assert config.mode is ConversationMode.SINGLE_TURN
    assert config.collection_window_seconds == 4.5
    assert config.tts_provider == "elevenlabs"


@pytest.mark.parametrize(
    ("name", "value"),
    [("ASSISTANT_MODE", "forever"), ("ASSISTANT_TTS_PROVIDER", "espeak")],
)
def test_conversation_config_rejects_unknown_names(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match="Unknown"):
        ConversationConfig.from_env()


def test_inworld_config_defaults(monkeypatch):
    monkeypatch.setenv("INWORLD_API_KEY", "base64-credentials")

    config = InworldConfig.from_env()

    assert config.default_voice == "inworld-tts-1-default"
    assert config.default_model == "inworld-tts-1"


def test_transcription_config_falls_back_to_openai_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    config = TranscriptionConfig.from_env()

    assert config.api_key == "sk-test"
    assert config.model == "whisper-1"
    assert config.language == "en"
    assert config.base_url is None


def test_transcription_config_targets_groq(monkeypatch):
    monkeypatch.setenv("TRANSCRIPTION_API_KEY", "gsk-test")
    monkeypatch.setenv("TRANSCRIPTION_BASE_URL", DEFAULT_CHAT_BASE_URL)
    monkeypatch.setenv("TRANSCRIPTION_MODEL", "whisper-large-v3-turbo")

    config = TranscriptionConfig.from_env()

    assert config.api_key == "gsk-test"
    assert config.base_url == DEFAULT_CHAT_BASE_URL
    assert config.model == "whisper-large-v3-turbo"
