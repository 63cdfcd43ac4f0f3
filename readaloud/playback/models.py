"""
Data models for narration sessions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from readaloud.tts.voices import Voice


class PlaybackState(Enum):
    """Playback state of a narration session.  Exactly one holds."""

    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"


@dataclass
class NarrationSession:
    """
    Mutable per-document state owned by the narration engine.

    ``current_page_index`` stays within ``[0, page_count)`` whenever the
    document has pages.  ``continuation_enabled`` is true while an
    auto-advancing read-through is active.
    """

    page_count: int
    current_page_index: int = 0
    state: PlaybackState = PlaybackState.IDLE
    continuation_enabled: bool = False

    @property
    def is_empty(self) -> bool:
        return self.page_count <= 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page_index + 1 < self.page_count

    def clamp(self, page_index: int) -> int:
        """Clamp *page_index* into the document's page range."""
        return max(0, min(self.page_count - 1, page_index))


@dataclass(frozen=True)
class Utterance:
    """
    One unit of text submitted to the speech backend.

    Settings are copied at build time, so later configuration changes
    never alter an utterance that is already in flight.
    """

    text: str
    page_index: Optional[int]
    voice_id: Optional[str]
    rate: float
    pitch: float
    volume: float


@dataclass
class NarrationCallbacks:
    """
    Optional observers notified on the engine's control context.

    Attributes:
        on_state_changed: Called with the new :class:`PlaybackState`.
        on_page_changed:  Called with the new current page index.
        on_voice_changed: Called with the newly active voice (or ``None``).
        on_utterance:     Called with every utterance submitted to the backend.
        on_error:         Called with errors that have no caller to raise to
                          (asynchronous synthesis failures, auto-advance failures).
    """

    on_state_changed: Optional[Callable[[PlaybackState], None]] = None
    on_page_changed: Optional[Callable[[int], None]] = None
    on_voice_changed: Optional[Callable[[Optional[Voice]], None]] = None
    on_utterance: Optional[Callable[[Utterance], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
