"""Shared fixtures and fake collaborators for the orchestrator tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

import pytest

from aurix_voice.events import ConversationEvent, StateChanged, TranscriptEvent
from aurix_voice.orchestrator import TurnOrchestrator, TurnTimings

FAST_TIMINGS = TurnTimings(
    collection_window_seconds=0.05,
    grace_poll_seconds=0.01,
    grace_max_seconds=0.05,
    min_transcript_chars=3,
    words_per_second=1000.0,
    speech_buffer_seconds=0.01,
)


class FakeChatResponder:
    """Chat responder returning a canned reply, optionally gated or failing."""

    def __init__(self, reply: str = "hi there") -> None:
        self.reply = reply
        self.ready = True
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.messages: list[str] = []
        self.system_prompts: list[str] = []

    def is_ready(self) -> bool:
        return self.ready

    def set_system_prompt(self, prompt: str) -> None:
        self.system_prompts.append(prompt)

    async def send_message(self, text: str) -> str:
        self.messages.append(text)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSpeechSynthesizer:
    """Speech synthesizer returning fixed bytes, optionally gated or failing."""

    def __init__(self, audio: bytes = bytes([0x01, 0x02])) -> None:
        self.audio = audio
        self.ready = True
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str | None, str | None]] = []

    def is_ready(self) -> bool:
        return self.ready

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        self.calls.append((text, voice_id, model_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.audio


class FakeTranscriptSource:
    """Transcript source fed by the test through `push`."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[TranscriptEvent] = asyncio.Queue()

    async def connect(self) -> None:
        return None

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        while True:
            yield await self.queue.get()

    async def close(self) -> None:
        return None

    def push(self, event: TranscriptEvent) -> None:
        self.queue.put_nowait(event)


class EventRecorder:
    """Collects outward events in emission order."""

    def __init__(self) -> None:
        self.events: list[ConversationEvent] = []

    def __call__(self, event: ConversationEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def labels(self) -> list[str]:
        """Event names with the state appended for state changes."""
        return [
            f"state_changed({event.state.value})" if isinstance(event, StateChanged) else event.name
            for event in self.events
            if event.name != "started"
        ]

    def count(self, name: str) -> int:
        return sum(1 for event in self.events if event.name == name)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until `predicate` holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline: float = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def chat() -> FakeChatResponder:
    return FakeChatResponder()


@pytest.fixture
def synthesizer() -> FakeSpeechSynthesizer:
    return FakeSpeechSynthesizer()


@pytest.fixture
def source() -> FakeTranscriptSource:
    return FakeTranscriptSource()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def orchestrator(
    chat: FakeChatResponder,
    synthesizer: FakeSpeechSynthesizer,
    recorder: EventRecorder,
) -> TurnOrchestrator:
    orchestrator = TurnOrchestrator(
        chat_responder=chat,
        speech_synthesizer=synthesizer,
        timings=FAST_TIMINGS,
    )
    orchestrator.events.subscribe(recorder)
    return orchestrator
