"""Push-to-talk turn orchestration over speech-to-text, chat, and TTS."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from aurix_voice.errors import CollaboratorNotReadyError, SessionAlreadyActiveError
from aurix_voice.events import (
    AIAudio,
    AIResponse,
    ConversationError,
    ConversationEvent,
    EventBus,
    ModeChanged,
    NoSpeechDetected,
    Started,
    StateChanged,
    Stopped,
    TranscriptError,
    TranscriptEvent,
    Transcription,
    TurnComplete,
    UserSpoke,
)
from aurix_voice.interfaces import (
    ChatResponder,
    PlaybackWaiter,
    SpeechSynthesizer,
    TranscriptSource,
)
from aurix_voice.types import (
    ConversationMode,
    ConversationOptions,
    ConversationStatus,
    RecordingRequest,
    TurnState,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TurnTimings:
    """Timing and filtering constants for one conversation."""

    collection_window_seconds: float = 7.0
    grace_poll_seconds: float = 0.1
    grace_max_seconds: float = 3.0
    min_transcript_chars: int = 3
    words_per_second: float = 2.5
    speech_buffer_seconds: float = 1.0

    def estimate_speech_seconds(self, text: str) -> float:
        """Approximate how long the spoken reply will take to play."""
        word_count: int = max(1, len(text.split()))
        return word_count / self.words_per_second + self.speech_buffer_seconds


@dataclass(slots=True)
class ConversationSession:
    """Mutable state of the one active conversation."""

    mode: ConversationMode = ConversationMode.CONTINUOUS
    voice_id: str | None = None
    model_id: str | None = None
    is_active: bool = False
    state: TurnState = TurnState.IDLE
    pending_transcript: str = ""
    is_collecting: bool = False
    is_processing_turn: bool = False
    window_started_at: float | None = None
    window_deadline: asyncio.TimerHandle | None = None
    generation: int = 0


@dataclass(slots=True)
class TurnOrchestrator:
    """Runs single-flight voice turns: collect, transcribe, respond, speak.

    All transitions happen on the event loop that called `start`. Every turn
    captures the session generation when its window opens; a result arriving
    after `stop` or a forced reset belongs to an older generation and is
    dropped without touching state.
    """

    chat_responder: ChatResponder
    speech_synthesizer: SpeechSynthesizer
    timings: TurnTimings = field(default_factory=TurnTimings)
    playback_waiter: PlaybackWaiter | None = None
    events: EventBus = field(default_factory=EventBus)
    logger: logging.Logger = LOGGER
    _session: ConversationSession = field(init=False, default_factory=ConversationSession)
    _transcript_source: TranscriptSource | None = field(init=False, default=None, repr=False)
    _consumer_task: asyncio.Task[None] | None = field(init=False, default=None, repr=False)
    _turn_task: asyncio.Task[None] | None = field(init=False, default=None, repr=False)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(
        self,
        transcript_source: TranscriptSource,
        options: ConversationOptions | None = None,
    ) -> None:
        """Activate a session bound to an already-connected transcript source."""
        if self._session.is_active:
            raise SessionAlreadyActiveError("Conversation already active")
        if not self.chat_responder.is_ready():
            raise CollaboratorNotReadyError("Chat responder not initialized")
        if not self.speech_synthesizer.is_ready():
            raise CollaboratorNotReadyError("Speech synthesizer not initialized")

        options = options or ConversationOptions()
        if options.system_prompt:
            self.chat_responder.set_system_prompt(options.system_prompt)

        self._session = ConversationSession(
            mode=options.mode,
            voice_id=options.voice_id,
            model_id=options.model_id,
            is_active=True,
            generation=self._session.generation + 1,
        )
        self._transcript_source = transcript_source
        self._consumer_task = asyncio.get_running_loop().create_task(
            self._consume_transcripts(transcript_source)
        )
        self.logger.info("Conversation started in %s mode.", options.mode.value)
        self._emit(Started(mode=options.mode))

    def stop(self) -> None:
        """End the session; safe from any state and idempotent."""
        session: ConversationSession = self._session
        if not session.is_active:
            return

        session.is_active = False
        self._abort_turn()
        consumer, self._consumer_task = self._consumer_task, None
        if consumer is not None and consumer is not _current_task():
            consumer.cancel()
        self._transcript_source = None

        self._set_state(TurnState.IDLE)
        self.logger.info("Conversation stopped.")
        self._emit(Stopped())

    def start_recording(self) -> RecordingRequest:
        """Open one collection window, or reject when the session is busy."""
        session: ConversationSession = self._session
        if not session.is_active:
            self.logger.debug("Recording rejected: no active conversation.")
            return RecordingRequest.REJECTED
        if session.is_collecting or session.is_processing_turn:
            self.logger.debug("Recording rejected: a turn is already in progress.")
            return RecordingRequest.REJECTED

        loop = asyncio.get_running_loop()
        session.pending_transcript = ""
        session.is_collecting = True
        session.window_started_at = loop.time()
        self._set_state(TurnState.LISTENING)
        session.window_deadline = loop.call_later(
            self.timings.collection_window_seconds,
            self._on_window_elapsed,
            session.generation,
        )
        self.logger.info(
            "Recording for %.1f seconds.", self.timings.collection_window_seconds
        )
        return RecordingRequest.ACCEPTED

    def set_mode(self, mode: ConversationMode) -> None:
        """Switch modes; a single-turn switch takes effect at the next turn end."""
        self._session.mode = mode
        self.logger.info("Conversation mode changed to %s.", mode.value)
        self._emit(ModeChanged(mode=mode))

    def set_voice(self, voice_id: str | None) -> None:
        """Use another TTS voice from the next synthesis on."""
        self._session.voice_id = voice_id
        self.logger.info("Voice changed to %s.", voice_id)

    def set_model(self, model_id: str | None) -> None:
        """Use another TTS model from the next synthesis on."""
        self._session.model_id = model_id
        self.logger.info("TTS model changed to %s.", model_id)

    def get_status(self) -> ConversationStatus:
        """Return a snapshot of the session."""
        session: ConversationSession = self._session
        return ConversationStatus(
            is_active=session.is_active,
            current_state=session.state,
            mode=session.mode,
            processing_response=session.is_processing_turn,
        )

    # ------------------------------------------------------------------
    # Transcript source handling
    # ------------------------------------------------------------------

    async def _consume_transcripts(self, source: TranscriptSource) -> None:
        """Feed transcript events into the state machine until unbound."""
        try:
            async for event in source.events():
                if self._transcript_source is not source:
                    break
                self.handle_transcript_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as error:
            if self._transcript_source is source:
                self.handle_transcript_event(TranscriptError(error=error))
        else:
            if self._transcript_source is source:
                self.logger.warning("Transcript source ended its event stream.")

    def handle_transcript_event(self, event: TranscriptEvent) -> None:
        """Apply one transcript source event to the session."""
        if isinstance(event, Transcription):
            self._on_transcription(event.text)
        elif isinstance(event, TranscriptError):
            self._on_transcript_error(event)

    def _on_transcription(self, text: str) -> None:
        session: ConversationSession = self._session
        if not session.is_active or not self._accepts_fragments():
            self.logger.debug("Ignoring transcription outside a collection window: %r", text)
            return
        cleaned: str = text.strip()
        if len(cleaned) < self.timings.min_transcript_chars:
            self.logger.debug("Ignoring short transcription: %r", text)
            return
        session.pending_transcript = cleaned
        self.logger.debug("Pending transcript updated: %s", cleaned)

    def _on_transcript_error(self, event: TranscriptError) -> None:
        session: ConversationSession = self._session
        self.logger.warning("Transcript source error: %s", event.reason)
        if not session.is_active:
            return

        busy: bool = session.is_collecting or session.is_processing_turn
        self._emit(ConversationError(reason=f"STT error: {event.reason}"))
        if busy:
            self._abort_turn()
            self._set_state(TurnState.IDLE)

    # ------------------------------------------------------------------
    # Turn pipeline
    # ------------------------------------------------------------------

    def _on_window_elapsed(self, generation: int) -> None:
        session: ConversationSession = self._session
        if generation != session.generation or not session.is_active:
            return

        session.window_deadline = None
        session.is_collecting = False
        session.is_processing_turn = True
        if session.window_started_at is not None:
            elapsed: float = asyncio.get_running_loop().time() - session.window_started_at
            self.logger.debug("Collection window closed after %.2f seconds.", elapsed)
        self._set_state(TurnState.TRANSCRIBING)
        self._turn_task = asyncio.get_running_loop().create_task(self._run_turn(generation))

    async def _run_turn(self, generation: int) -> None:
        """Wait for a trailing transcript, then respond and speak."""
        session: ConversationSession = self._session
        transcript: str = await self._await_transcript(generation)
        if not self._is_current(generation):
            return
        if not transcript:
            self.logger.info("No speech detected in collection window.")
            self._finish_turn(generation, NoSpeechDetected())
            return

        session.pending_transcript = ""
        self._set_state(TurnState.RESPONDING)
        self._emit(UserSpoke(text=transcript))
        if not self._is_current(generation):
            return

        try:
            reply: str = await self.chat_responder.send_message(transcript)
        except Exception as error:
            self._fail_turn(generation, f"Failed to generate AI response: {error}", error)
            return
        if not self._is_current(generation):
            return

        self._set_state(TurnState.SYNTHESIZING)
        self._emit(AIResponse(text=reply))

        try:
            audio: bytes = await self.speech_synthesizer.synthesize(
                reply,
                voice_id=session.voice_id,
                model_id=session.model_id,
            )
        except Exception as error:
            self._fail_turn(generation, f"Failed to generate speech: {error}", error)
            return
        if not self._is_current(generation):
            return

        self._set_state(TurnState.SPEAKING)
        self._emit(AIAudio(audio=audio))
        await self._wait_for_playback(reply, audio)
        if not self._is_current(generation):
            return

        self._finish_turn(generation, TurnComplete())

    async def _await_transcript(self, generation: int) -> str:
        """Poll for a trailing fragment up to the grace limit."""
        waited: float = 0.0
        while self._is_current(generation):
            transcript: str = self._session.pending_transcript
            if transcript or waited >= self.timings.grace_max_seconds:
                return transcript
            await asyncio.sleep(self.timings.grace_poll_seconds)
            waited += self.timings.grace_poll_seconds
        return ""

    async def _wait_for_playback(self, reply: str, audio: bytes) -> None:
        if self.playback_waiter is None:
            await asyncio.sleep(self.timings.estimate_speech_seconds(reply))
            return
        try:
            await self.playback_waiter.play(audio)
        except Exception as error:
            self.logger.warning("Playback failed: %s", error)

    def _fail_turn(self, generation: int, reason: str, error: Exception) -> None:
        if not self._is_current(generation):
            return
        self.logger.error("Turn failed: %s", reason, exc_info=error)
        self._emit(ConversationError(reason=reason))
        if not self._is_current(generation):
            return
        self._release_turn()
        self._set_state(TurnState.IDLE)

    def _finish_turn(self, generation: int, outcome: ConversationEvent) -> None:
        """Return to idle and emit the turn's outcome.

        The turn stays claimed while `state_changed(idle)` is delivered, so a
        listener cannot open the next window before the outcome is out. A
        single-turn session that completed stops while still claimed.
        """
        self._set_state(TurnState.IDLE)
        if not self._is_current(generation):
            return
        ends_session: bool = (
            self._session.mode is ConversationMode.SINGLE_TURN
            and isinstance(outcome, TurnComplete)
        )
        if not ends_session:
            self._release_turn()
        self._emit(outcome)
        if ends_session and self._is_current(generation):
            self.stop()

    def _release_turn(self) -> None:
        """Clear turn-scoped fields so the next window may open."""
        session: ConversationSession = self._session
        session.is_processing_turn = False
        session.is_collecting = False
        session.pending_transcript = ""
        session.window_started_at = None
        self._turn_task = None

    def _abort_turn(self) -> None:
        """Invalidate the current turn and cancel its timer and task."""
        session: ConversationSession = self._session
        session.generation += 1
        if session.window_deadline is not None:
            session.window_deadline.cancel()
            session.window_deadline = None
        task, self._turn_task = self._turn_task, None
        if task is not None and task is not _current_task():
            task.cancel()
        session.is_collecting = False
        session.is_processing_turn = False
        session.pending_transcript = ""
        session.window_started_at = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _accepts_fragments(self) -> bool:
        """Fragments count while the window is open or during the trailing grace wait."""
        session: ConversationSession = self._session
        if session.is_collecting:
            return True
        return session.is_processing_turn and session.state is TurnState.TRANSCRIBING

    def _is_current(self, generation: int) -> bool:
        return self._session.is_active and generation == self._session.generation

    def _set_state(self, state: TurnState) -> None:
        if self._session.state is state:
            return
        self._session.state = state
        self.logger.info("Conversation state: %s", state.value)
        self._emit(StateChanged(state=state))

    def _emit(self, event: ConversationEvent) -> None:
        self.events.emit(event)


def _current_task() -> asyncio.Task[object] | None:
    """Return the running task, or None outside an event loop."""
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
