"""
Voice catalogs and language-preference voice selection.

The reader prefers Bulgarian voices, then other Slavic languages, then
English, then whatever the catalog offers first.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from readaloud.errors import UnknownVoiceError

if TYPE_CHECKING:
    from .base_engine import BaseTTSEngine

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_PREFERENCES = ("bg", "ru", "pl", "cs", "sk", "hr", "sl", "sr")
FALLBACK_LANGUAGE = "en"


@dataclass(frozen=True)
class Voice:
    """A synthesis identity from a backend-supplied catalog."""

    id: str
    display_name: str
    language_tag: str

    def matches_language(self, prefix: str) -> bool:
        """Case-insensitive prefix match; ``_`` and ``-`` are equivalent."""
        return _normalize_tag(self.language_tag).startswith(_normalize_tag(prefix))

    def __str__(self) -> str:
        return f"{self.display_name} ({self.language_tag})"


def _normalize_tag(tag: str) -> str:
    return (tag or "").strip().lower().replace("_", "-")


# ------------------------------------------------------------------
# Catalogs
# ------------------------------------------------------------------


class VoiceCatalog(ABC):
    """Read-only source of available voices."""

    @abstractmethod
    def list(self) -> List[Voice]:
        """Return the currently available voices."""


class StaticVoiceCatalog(VoiceCatalog):
    """Catalog over a fixed list of voices."""

    def __init__(self, voices: Iterable[Voice] = ()):
        self._voices = list(voices)

    def list(self) -> List[Voice]:
        return list(self._voices)

    def __repr__(self) -> str:
        return f"StaticVoiceCatalog(voices={len(self._voices)})"


class EngineVoiceCatalog(VoiceCatalog):
    """Catalog that asks a synthesis engine for its voices on every refresh."""

    def __init__(self, engine: "BaseTTSEngine"):
        self._engine = engine

    def list(self) -> List[Voice]:
        return list(self._engine.list_voices())

    def __repr__(self) -> str:
        return f"EngineVoiceCatalog(engine={self._engine.engine_name})"


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------


def select_voice(
    voices: Sequence[Voice],
    preferred_language_prefixes: Sequence[str],
    fallback_language: str = FALLBACK_LANGUAGE,
) -> Optional[Voice]:
    """
    Pick a voice by language preference.

    Tries each preferred prefix in order, then *fallback_language*,
    then the first voice in the catalog.  Returns ``None`` for an empty
    catalog, leaving the backend to use its own default.
    """
    for prefix in preferred_language_prefixes:
        for voice in voices:
            if voice.matches_language(prefix):
                return voice

    if fallback_language:
        for voice in voices:
            if voice.matches_language(fallback_language):
                return voice

    return voices[0] if voices else None


class VoiceSelector:
    """
    Tracks the active voice across catalog refreshes.

    A manual choice made with :meth:`choose` wins over automatic
    selection for as long as the voice stays in the catalog.

    Usage::

        selector = VoiceSelector(StaticVoiceCatalog(voices), ["bg", "ru"])
        selector.active_voice      # automatic pick
        selector.choose("ru-irina")
    """

    def __init__(
        self,
        catalog: VoiceCatalog,
        preferred_languages: Sequence[str] = DEFAULT_LANGUAGE_PREFERENCES,
        fallback_language: str = FALLBACK_LANGUAGE,
    ):
        self.catalog = catalog
        self.preferred_languages = list(preferred_languages)
        self.fallback_language = fallback_language
        self._voices: List[Voice] = []
        self._automatic: Optional[Voice] = None
        self._manual: Optional[Voice] = None
        self.refresh()

    @property
    def voices(self) -> List[Voice]:
        """Voices from the most recent catalog listing."""
        return list(self._voices)

    @property
    def active_voice(self) -> Optional[Voice]:
        """The manual choice if any, otherwise the automatic pick."""
        return self._manual or self._automatic

    @property
    def manual_choice(self) -> Optional[Voice]:
        return self._manual

    def select(self, preferred_language_prefixes: Optional[Sequence[str]] = None) -> Optional[Voice]:
        """Run the fallback algorithm over the current catalog listing."""
        prefixes = (
            self.preferred_languages
            if preferred_language_prefixes is None
            else preferred_language_prefixes
        )
        return select_voice(self._voices, prefixes, self.fallback_language)

    def find(self, voice_id: str) -> Optional[Voice]:
        for voice in self._voices:
            if voice.id == voice_id:
                return voice
        return None

    def choose(self, voice_id: Optional[str]) -> Optional[Voice]:
        """
        Record a manual voice choice.  ``None`` returns to automatic selection.

        Raises:
            UnknownVoiceError: If *voice_id* is not in the catalog.
        """
        if voice_id is None:
            self._manual = None
            return self.active_voice

        voice = self.find(voice_id)
        if voice is None:
            raise UnknownVoiceError(f"Unknown voice '{voice_id}'")
        self._manual = voice
        logger.info("Voice chosen: %s", voice)
        return voice

    def set_preferences(self, preferred_languages: Sequence[str]) -> Optional[Voice]:
        """Replace the language preferences and re-run automatic selection."""
        self.preferred_languages = list(preferred_languages)
        self._automatic = self.select()
        return self.active_voice

    def refresh(self) -> Optional[Voice]:
        """
        Re-list the catalog.

        Keeps the manual choice if that voice is still present;
        otherwise falls back to automatic selection.
        """
        try:
            self._voices = list(self.catalog.list())
        except Exception as e:
            logger.warning("Voice catalog unavailable (%s), using backend default", e)
            self._voices = []

        if self._manual is not None:
            still_there = self.find(self._manual.id)
            if still_there is None:
                logger.info("Chosen voice %s is no longer available", self._manual)
            self._manual = still_there

        self._automatic = self.select()
        if self.active_voice is None:
            logger.info("No voices available, using backend default voice")
        else:
            logger.debug(
                "Voice catalog: %d voices, active %s", len(self._voices), self.active_voice
            )
        return self.active_voice

    def __repr__(self) -> str:
        return f"VoiceSelector(voices={len(self._voices)}, active={self.active_voice})"
