"""
PageVoice read-aloud engine.

Continuous page-by-page narration of documents over an asynchronous
speech backend, with language-aware voice selection and offline
synthesis (Kokoro, Piper).
"""

from .errors import (
    EmptyDocumentError,
    NarrationError,
    NoDocumentError,
    SpeechBackendError,
    UnknownVoiceError,
)
from .playback import (
    NarrationCallbacks,
    NarrationEngine,
    PlaybackConfig,
    PlaybackState,
)
from .text import TextExtractor
from .tts import StaticVoiceCatalog, Voice, VoiceSelector

__all__ = [
    "EmptyDocumentError",
    "NarrationCallbacks",
    "NarrationEngine",
    "NarrationError",
    "NoDocumentError",
    "PlaybackConfig",
    "PlaybackState",
    "SpeechBackendError",
    "StaticVoiceCatalog",
    "TextExtractor",
    "UnknownVoiceError",
    "Voice",
    "VoiceSelector",
]
