"""Push-to-talk voice assistant package."""

from aurix_voice.orchestrator import TurnOrchestrator, TurnTimings
from aurix_voice.types import (
    ConversationMode,
    ConversationOptions,
    ConversationStatus,
    RecordingRequest,
    TurnState,
)

__all__ = [
    "ConversationMode",
    "ConversationOptions",
    "ConversationStatus",
    "RecordingRequest",
    "TurnOrchestrator",
    "TurnState",
    "TurnTimings",
]
