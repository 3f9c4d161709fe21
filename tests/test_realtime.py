"""Tests for realtime server event translation."""

import pytest

from aurix_voice.config import RealtimeConfig
from aurix_voice.events import SpeechStarted, SpeechStopped, TranscriptError, Transcription
from aurix_voice.realtime import RealtimeTranscriptSource, build_session_update


@pytest.fixture
def realtime_source() -> RealtimeTranscriptSource:
    config = RealtimeConfig(api_key="sk-test", model="gpt-4o-realtime-preview", sample_rate=24000)
    return RealtimeTranscriptSource(config)


async def _drain(source: RealtimeTranscriptSource) -> list:
    await source.close()
    return [event async for event in source.events()]


def test_session_update_configures_server_vad():
    session = build_session_update()["session"]

    assert session["input_audio_transcription"] == {"model": "whisper-1", "language": "en"}
    assert session["turn_detection"]["type"] == "server_vad"
    assert session["turn_detection"]["silence_duration_ms"] == 700


async def test_vad_and_transcription_events_are_translated(realtime_source):
    realtime_source.handle_server_event({"type": "input_audio_buffer.speech_started"})
    realtime_source.handle_server_event({"type": "input_audio_buffer.speech_stopped"})
    realtime_source.handle_server_event(
        {
            "type": "conversation.item.input_audio_transcription.completed",
            "transcript": "turn the lights on",
        }
    )

    assert await _drain(realtime_source) == [
        SpeechStarted(),
        SpeechStopped(),
        Transcription(text="turn the lights on"),
    ]


async def test_blank_transcription_is_dropped(realtime_source):
    realtime_source.handle_server_event(
        {"type": "conversation.item.input_audio_transcription.completed", "transcript": "  "}
    )

    assert await _drain(realtime_source) == []


async def test_commit_empty_error_is_ignored(realtime_source):
    realtime_source.handle_server_event(
        {"type": "error", "error": {"code": "input_audio_buffer_commit_empty", "message": "x"}}
    )

    assert await _drain(realtime_source) == []


async def test_server_errors_become_transcript_errors(realtime_source):
    realtime_source.handle_server_event(
        {"type": "error", "error": {"code": "server_error", "message": "overloaded"}}
    )
    realtime_source.handle_server_event(
        {
            "type": "conversation.item.input_audio_transcription.failed",
            "error": {"message": "audio unreadable"},
        }
    )

    events = await _drain(realtime_source)

    assert events == [
        TranscriptError(error="overloaded"),
        TranscriptError(error="audio unreadable"),
    ]


async def test_unknown_events_are_ignored(realtime_source):
    realtime_source.handle_server_event({"type": "response.text.delta", "delta": "hi"})

    assert await _drain(realtime_source) == []


def test_send_audio_is_dropped_while_disconnected(realtime_source):
    realtime_source.send_audio(b"\x00\x01")

    assert realtime_source.is_connected is False
