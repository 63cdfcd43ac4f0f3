"""Narration engine, playback settings, and the serialized control context."""

from .config import PlaybackConfig, rate_to_speed_factor
from .control import ControlLoop, InlineControlLoop, ThreadedControlLoop
from .engine import NarrationEngine
from .models import NarrationCallbacks, NarrationSession, PlaybackState, Utterance

__all__ = [
    "ControlLoop",
    "InlineControlLoop",
    "NarrationCallbacks",
    "NarrationEngine",
    "NarrationSession",
    "PlaybackConfig",
    "PlaybackState",
    "ThreadedControlLoop",
    "Utterance",
    "rate_to_speed_factor",
]
