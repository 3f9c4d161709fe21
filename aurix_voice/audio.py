"""Microphone capture and local audio playback."""

from __future__ import annotations

import asyncio
import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from aurix_voice.interfaces import AudioSink

LOGGER = logging.getLogger(__name__)


def detect_audio_suffix(audio: bytes) -> str:
    """Guess a file suffix for encoded audio from its header bytes."""
    if audio[:4] == b"RIFF":
        return ".wav"
    if audio[:4] == b"OggS":
        return ".ogg"
    return ".mp3"


@dataclass(slots=True)
class MicrophoneStreamer:
    """Streams mono PCM16 microphone audio into an audio sink."""

    sink: AudioSink
    sample_rate: int = 24000
    block_duration_ms: int = 100
    logger: logging.Logger = LOGGER
    _sounddevice: Any = field(init=False, repr=False)
    _stream: Any = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        """Import the microphone backend."""
        try:
            import sounddevice
        except ImportError as error:
            raise RuntimeError("sounddevice package is required for microphone input.") from error
        self._sounddevice = sounddevice

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Open the input stream; chunks are delivered on `loop`."""
        if self._stream is not None:
            return

        def callback(indata: Any, frames: int, time_info: Any, status: Any) -> None:
            _ = frames, time_info
            if status:
                self.logger.debug("Microphone status: %s", status)
            loop.call_soon_threadsafe(self.sink.send_audio, bytes(indata))

        self._stream = self._sounddevice.RawInputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="int16",
            blocksize=int(self.sample_rate * self.block_duration_ms / 1000),
            callback=callback,
        )
        self._stream.start()
        self.logger.info("Microphone streaming at %d Hz.", self.sample_rate)

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()


@dataclass(slots=True)
class LocalAudioPlayer:
    """Writes synthesized audio to disk and plays it to completion."""

    output_dir: Path
    cleanup_after_playback: bool = True

    async def play(self, audio: bytes) -> None:
        """Play audio in a worker thread, returning once playback has finished."""
        await asyncio.to_thread(self.play_blocking, audio)

    def play_blocking(self, audio: bytes) -> Path | None:
        """Persist audio, play it, and optionally clean it up."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target_path: Path = self._build_output_path(detect_audio_suffix(audio))
        target_path.write_bytes(audio)

        self._safe_play(target_path)
        if self.cleanup_after_playback:
            self._safe_delete(target_path)
            return None
        return target_path

    def _build_output_path(self, suffix: str) -> Path:
        """Create a timestamped output path for an audio artifact."""
        timestamp: str = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        return self.output_dir / f"assistant_{timestamp}{suffix}"

    def _safe_play(self, path: Path) -> None:
        """Play an audio file while swallowing playback errors."""
        try:
            self._play(path)
        except Exception as error:
            LOGGER.warning("Audio playback failed for %s: %s", path, error)

    def _safe_delete(self, path: Path) -> None:
        """Delete a generated audio file while swallowing cleanup errors."""
        try:
            path.unlink(missing_ok=True)
        except Exception as error:
            LOGGER.warning("Audio cleanup failed for %s: %s", path, error)

    def _play(self, path: Path) -> None:
        """Play an audio file with platform-specific methods."""
        if platform.system() == "Windows" and path.suffix == ".wav":
            import winsound

            winsound.PlaySound(str(path), winsound.SND_FILENAME)
            return

        player_command: list[str] | None = self.resolve_player(path)
        if player_command is None:
            raise RuntimeError(f"No compatible audio player found for {path.suffix} files.")
        subprocess.run(player_command, check=False)

    def resolve_player(self, path: Path) -> list[str] | None:
        """Resolve the first available command-line player for the file type."""
        if shutil.which("ffplay"):
            return ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", str(path)]
        if shutil.which("afplay"):
            return ["afplay", str(path)]
        if path.suffix == ".mp3" and shutil.which("mpg123"):
            return ["mpg123", "-q", str(path)]
        if path.suffix == ".wav":
            for player in ("aplay", "paplay"):
                if shutil.which(player):
                    return [player, str(path)]
        return None
