"""Tests for batch Whisper transcription."""

import io
import wave
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from aurix_voice.config import TranscriptionConfig
from aurix_voice.errors import TranscriptionError
from aurix_voice.transcription import OpenAIBatchTranscriber, TranscriptionResult


class FakeAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def config() -> TranscriptionConfig:
    return TranscriptionConfig(
        api_key="test-key",
        base_url=None,
        model="whisper-1",
        language="en",
        timeout_seconds=5.0,
    )


def _client(text: str | None = "hello world", language: str | None = None) -> MagicMock:
    client = MagicMock()
    client.audio.transcriptions.create.return_value = SimpleNamespace(
        text=f"  {text} " if text is not None else None,
        language=language,
    )
    return client


# =============================================================================
# Requests
# =============================================================================


def test_transcribe_pcm_uploads_named_wav(config):
    client = _client()
    transcriber = OpenAIBatchTranscriber(config, client=client)

    result = transcriber.transcribe_pcm(b"\x00\x00" * 1000, sample_rate=16000)

    assert result == TranscriptionResult(text="hello world")
    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["language"] == "en"
    assert kwargs["temperature"] == 0.0
    assert "prompt" not in kwargs
    upload = kwargs["file"]
    assert upload.name == "recording.wav"
    with wave.open(io.BytesIO(upload.getvalue()), "rb") as wav_file:
        assert wav_file.getframerate() == 16000
        assert wav_file.getnframes() == 1000


def test_transcribe_pcm_without_audio_skips_request(config):
    client = _client()

    result = OpenAIBatchTranscriber(config, client=client).transcribe_pcm(b"", sample_rate=16000)

    assert result.text == ""
    client.audio.transcriptions.create.assert_not_called()


def test_transcribe_file_passes_options(config, tmp_path):
    clip = tmp_path / "clip.mp3"
    clip.write_bytes(b"ID3" + b"\x00" * 2000)
    client = _client(text="guten tag", language="german")

    result = OpenAIBatchTranscriber(config, client=client).transcribe_file(
        clip, language="de", prompt="AURIX"
    )

    assert result == TranscriptionResult(text="guten tag", language="german")
    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["language"] == "de"
    assert kwargs["prompt"] == "AURIX"
    assert kwargs["file"].name == "clip.mp3"


def test_transcribe_file_blank_result(config, tmp_path):
    clip = tmp_path / "clip.wav"
    clip.write_bytes(b"RIFF" + b"\x00" * 2000)

    result = OpenAIBatchTranscriber(config, client=_client(text=None)).transcribe_file(clip)

    assert result.text == ""


async def test_transcribe_file_async_runs_in_thread(config, tmp_path):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"\x1aE\xdf\xa3" + b"\x00" * 2000)

    result = await OpenAIBatchTranscriber(config, client=_client()).transcribe_file_async(clip)

    assert result.text == "hello world"


# =============================================================================
# Validation and failures
# =============================================================================


def test_transcribe_file_missing(config, tmp_path):
    transcriber = OpenAIBatchTranscriber(config, client=_client())

    with pytest.raises(TranscriptionError, match="not found"):
        transcriber.transcribe_file(tmp_path / "missing.wav")


def test_transcribe_file_empty(config, tmp_path):
    clip = tmp_path / "empty.wav"
    clip.write_bytes(b"")
    client = _client()

    with pytest.raises(TranscriptionError, match="empty"):
        OpenAIBatchTranscriber(config, client=client).transcribe_file(clip)
    client.audio.transcriptions.create.assert_not_called()


def test_transcribe_file_too_large(config, tmp_path, monkeypatch):
    monkeypatch.setattr("aurix_voice.transcription.MAX_UPLOAD_BYTES", 10)
    clip = tmp_path / "long.wav"
    clip.write_bytes(b"\x00" * 11)

    with pytest.raises(TranscriptionError, match="too large"):
        OpenAIBatchTranscriber(config, client=_client()).transcribe_file(clip)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, "Invalid transcription API key"),
        (429, "rate limit"),
        (500, "server error"),
        (None, "Transcription failed: boom"),
    ],
)
def test_transcription_api_failures(config, status, expected):
    client = MagicMock()
    client.audio.transcriptions.create.side_effect = FakeAPIError("boom", status_code=status)

    with pytest.raises(TranscriptionError, match=expected):
        OpenAIBatchTranscriber(config, client=client).transcribe_pcm(
            b"\x00\x00" * 1000, sample_rate=24000
        )
