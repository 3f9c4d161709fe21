"""Exception hierarchy for the voice assistant."""

from __future__ import annotations


class AurixError(Exception):
    """Base class for all assistant errors."""


class SessionAlreadyActiveError(AurixError):
    """Raised when starting a conversation that is already running."""


class CollaboratorNotReadyError(AurixError):
    """Raised when a required collaborator has not been initialized."""


class ChatError(AurixError):
    """Raised when the chat responder cannot produce a reply."""


class SynthesisError(AurixError):
    """Raised when text-to-speech synthesis fails."""


class TranscriptSourceError(AurixError):
    """Raised when the streaming transcript source fails or disconnects."""


class TranscriptionError(AurixError):
    """Raised when a recorded clip cannot be transcribed."""
