"""Command-line push-to-talk front-end for the voice assistant."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from aurix_voice.audio import LocalAudioPlayer, MicrophoneStreamer
from aurix_voice.chat import OpenAIChatResponder
from aurix_voice.config import (
    TTS_PROVIDERS,
    ChatConfig,
    ConversationConfig,
    ElevenLabsConfig,
    InworldConfig,
    RealtimeConfig,
    TranscriptionConfig,
)
from aurix_voice.errors import AurixError
from aurix_voice.events import (
    AIAudio,
    AIResponse,
    ConversationError,
    ConversationEvent,
    ModeChanged,
    NoSpeechDetected,
    StateChanged,
    Stopped,
    TurnComplete,
    UserSpoke,
)
from aurix_voice.interfaces import SpeechSynthesizer
from aurix_voice.orchestrator import TurnOrchestrator, TurnTimings
from aurix_voice.realtime import RealtimeTranscriptSource
from aurix_voice.transcription import OpenAIBatchTranscriber, TranscriptionResult
from aurix_voice.tts import ElevenLabsSpeechSynthesizer, InworldSpeechSynthesizer
from aurix_voice.types import (
    ConversationMode,
    ConversationOptions,
    ConversationStatus,
    RecordingRequest,
)

LOGGER = logging.getLogger(__name__)

HELP_TEXT = "[Enter] record  [m] toggle mode  [s] status  [q] quit"


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Push-to-talk voice assistant.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ConversationMode],
        default=None,
        help="Conversation mode (default from env).",
    )
    parser.add_argument("--window", type=float, default=None, help="Recording window in seconds.")
    parser.add_argument("--voice", type=str, default=None, help="TTS voice id override.")
    parser.add_argument("--tts-model", type=str, default=None, help="TTS model id override.")
    parser.add_argument(
        "--tts-provider",
        choices=TTS_PROVIDERS,
        default=None,
        help="Speech synthesis provider (default from env).",
    )
    parser.add_argument("--system-prompt", type=str, default=None, help="Chat system prompt.")
    parser.add_argument(
        "--no-playback",
        action="store_true",
        help="Do not play replies; estimate speaking time from reply length instead.",
    )
    parser.add_argument(
        "--artifacts-dir",
        type=Path,
        default=Path("./artifacts"),
        help="Directory for temporary audio files.",
    )
    parser.add_argument(
        "--transcribe",
        type=Path,
        default=None,
        metavar="FILE",
        help="Transcribe a recorded audio file and exit.",
    )
    return parser


def configure_logging(level: str) -> None:
    """Configure process logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def build_synthesizer(provider: str) -> SpeechSynthesizer:
    """Construct the configured speech synthesizer."""
    if provider == "elevenlabs":
        return ElevenLabsSpeechSynthesizer(ElevenLabsConfig.from_env())
    return InworldSpeechSynthesizer(InworldConfig.from_env())


def build_orchestrator(
    args: argparse.Namespace,
    config: ConversationConfig,
) -> TurnOrchestrator:
    """Construct a fully wired orchestrator from environment config + CLI overrides."""
    timings = TurnTimings(
        collection_window_seconds=config.collection_window_seconds,
        grace_poll_seconds=config.grace_poll_seconds,
        grace_max_seconds=config.grace_max_seconds,
        min_transcript_chars=config.min_transcript_chars,
        words_per_second=config.words_per_second,
    )
    if args.window is not None:
        timings = replace(timings, collection_window_seconds=args.window)

    playback = None
    if not args.no_playback:
        playback = LocalAudioPlayer(output_dir=args.artifacts_dir / "audio")

    return TurnOrchestrator(
        chat_responder=OpenAIChatResponder(ChatConfig.from_env()),
        speech_synthesizer=build_synthesizer(args.tts_provider or config.tts_provider),
        timings=timings,
        playback_waiter=playback,
        logger=logging.getLogger("aurix_voice.orchestrator"),
    )


def print_event(event: ConversationEvent) -> None:
    """Render outward conversation events for the terminal."""
    if isinstance(event, StateChanged):
        print(f"[{event.state.value}]")
    elif isinstance(event, UserSpoke):
        print(f"You: {event.text}")
    elif isinstance(event, AIResponse):
        print(f"Assistant: {event.text}")
    elif isinstance(event, AIAudio):
        print(f"(audio: {len(event.audio)} bytes)")
    elif isinstance(event, ConversationError):
        print(f"Error: {event.reason}")
    elif isinstance(event, ModeChanged):
        print(f"Mode: {event.mode.value}")
    elif isinstance(event, NoSpeechDetected):
        print("No speech detected.")
    elif isinstance(event, TurnComplete):
        print(HELP_TEXT)
    elif isinstance(event, Stopped):
        print("Conversation stopped.")


async def run_session(args: argparse.Namespace) -> int:
    """Connect collaborators and drive the conversation from keyboard input."""
    config: ConversationConfig = ConversationConfig.from_env()
    configure_logging(config.log_level)
    orchestrator: TurnOrchestrator = build_orchestrator(args, config)
    orchestrator.events.subscribe(print_event)

    realtime_config: RealtimeConfig = RealtimeConfig.from_env()
    source = RealtimeTranscriptSource(realtime_config)
    microphone = MicrophoneStreamer(sink=source, sample_rate=realtime_config.sample_rate)

    options = ConversationOptions(
        mode=ConversationMode.parse(args.mode) if args.mode else config.mode,
        system_prompt=args.system_prompt,
        voice_id=args.voice,
        model_id=args.tts_model,
    )
    try:
        await source.connect()
        microphone.start(asyncio.get_running_loop())
        await orchestrator.start(source, options)
        print(HELP_TEXT)
        while orchestrator.get_status().is_active:
            command: str = (await asyncio.to_thread(input)).strip().lower()
            status: ConversationStatus = orchestrator.get_status()
            if not status.is_active or command == "q":
                break
            if command == "s":
                print(status)
                continue
            if command == "m":
                orchestrator.set_mode(_toggled_mode(status.mode))
                continue
            if orchestrator.start_recording() is RecordingRequest.REJECTED:
                print("Busy; wait for the current turn to finish.")
        if not orchestrator.get_status().is_active:
            print("Conversation has ended.")
    finally:
        orchestrator.stop()
        microphone.stop()
        await source.close()
    return 0


def run_transcription(path: Path) -> int:
    """Transcribe one recorded file and print the text."""
    configure_logging(ConversationConfig.from_env().log_level)
    transcriber = OpenAIBatchTranscriber(TranscriptionConfig.from_env())
    result: TranscriptionResult = transcriber.transcribe_file(path)
    print(result.text or "No speech detected")
    return 0


def _toggled_mode(mode: ConversationMode) -> ConversationMode:
    if mode is ConversationMode.CONTINUOUS:
        return ConversationMode.SINGLE_TURN
    return ConversationMode.CONTINUOUS


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    load_dotenv()
    try:
        if args.transcribe is not None:
            return run_transcription(args.transcribe)
        return asyncio.run(run_session(args))
    except KeyboardInterrupt:
        LOGGER.info("Stopped by user.")
        return 0
    except (AurixError, ValueError) as error:
        LOGGER.error("%s", error)
        return 1
