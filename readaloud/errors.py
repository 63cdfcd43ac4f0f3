"""Exceptions raised by the narration engine and speech backends."""


class NarrationError(Exception):
    """Base class for all narration errors."""


class NoDocumentError(NarrationError):
    """Raised when narration is requested before a document is opened."""


class EmptyDocumentError(NarrationError):
    """Raised when narration is requested on a document with no pages."""


class SpeechBackendError(NarrationError):
    """
    Raised when the speech backend is unavailable or rejects an utterance.

    Examples:
    - audio device cannot be opened
    - backend already shut down
    - backend owned by another engine
    """


class UnknownVoiceError(NarrationError, ValueError):
    """Raised when a voice id is not present in the voice catalog."""
