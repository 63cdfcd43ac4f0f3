"""Speech backends, synthesis engines, and voice selection."""

from .base_backend import SpeechBackend, SpeechEvent, SpeechEventKind, UtteranceHandle
from .base_engine import BaseTTSEngine
from .model_manager import ModelManager
from .voices import (
    DEFAULT_LANGUAGE_PREFERENCES,
    EngineVoiceCatalog,
    StaticVoiceCatalog,
    Voice,
    VoiceCatalog,
    VoiceSelector,
    select_voice,
)

__all__ = [
    "BaseTTSEngine",
    "DEFAULT_LANGUAGE_PREFERENCES",
    "EngineVoiceCatalog",
    "ModelManager",
    "SpeechBackend",
    "SpeechEvent",
    "SpeechEventKind",
    "StaticVoiceCatalog",
    "UtteranceHandle",
    "Voice",
    "VoiceCatalog",
    "VoiceSelector",
    "select_voice",
]
