"""
Abstract base class for asynchronous speech backends.

A backend accepts utterances, plays them on its own execution context,
and reports progress as :class:`SpeechEvent` objects delivered to a
single attached listener.  Every event carries the handle returned by
:meth:`SpeechBackend.speak`, so a listener can tell events for the
current utterance from stale ones.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from readaloud.errors import SpeechBackendError

logger = logging.getLogger(__name__)


class SpeechEventKind(Enum):
    STARTED = "started"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class UtteranceHandle:
    """Identifies one submitted utterance.  Ids increase monotonically."""

    id: int
    text: str = ""

    def __repr__(self) -> str:
        preview = self.text[:30].replace("\n", " ")
        return f"UtteranceHandle(id={self.id}, text='{preview}')"


@dataclass(frozen=True)
class SpeechEvent:
    kind: SpeechEventKind
    handle: UtteranceHandle
    error: Optional[Exception] = None


SpeechListener = Callable[[SpeechEvent], None]


class SpeechBackend(ABC):
    """
    Common interface for speech backends used by the narration engine.

    Subclasses implement :meth:`_submit`, :meth:`pause`, :meth:`resume`
    and :meth:`stop`, and report progress with :meth:`_emit`.
    The backend is owned by one listener at a time.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._listener: Optional[SpeechListener] = None
        self._listener_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def attach(self, listener: SpeechListener) -> None:
        """
        Attach the single event listener.

        Raises:
            SpeechBackendError: If another listener already owns the backend.
        """
        with self._listener_lock:
            if self._listener is not None and self._listener != listener:
                raise SpeechBackendError("Speech backend is owned by another engine")
            self._listener = listener

    def release(self, listener: SpeechListener) -> None:
        """Detach *listener* if it is the current owner."""
        with self._listener_lock:
            if self._listener == listener:
                self._listener = None

    @property
    def is_attached(self) -> bool:
        return self._listener is not None

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def speak(
        self,
        text: str,
        voice_id: Optional[str] = None,
        rate: float = 0.5,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> UtteranceHandle:
        """
        Queue *text* for synthesis and playback.

        Args:
            text:     Text to speak.
            voice_id: Voice identifier, or ``None`` for the backend default.
            rate:     Speech rate on the 0.1–1.0 scale (0.5 = normal).
            pitch:    Pitch multiplier.
            volume:   Output volume, 0.0–1.0.

        Returns:
            Handle identifying the utterance in later events.

        Raises:
            SpeechBackendError: If the backend cannot accept the utterance.
        """
        handle = UtteranceHandle(id=next(self._ids), text=text)
        self._submit(handle, text, voice_id, rate, pitch, volume)
        return handle

    @abstractmethod
    def _submit(
        self,
        handle: UtteranceHandle,
        text: str,
        voice_id: Optional[str],
        rate: float,
        pitch: float,
        volume: float,
    ) -> None:
        """Start working on an utterance; must not block on playback."""

    @abstractmethod
    def pause(self) -> None:
        """Pause the current utterance immediately."""

    @abstractmethod
    def resume(self) -> None:
        """Resume a paused utterance."""

    @abstractmethod
    def stop(self) -> None:
        """Cancel the current and any queued utterances immediately."""

    def close(self) -> None:
        """Release backend resources."""

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _emit(
        self,
        kind: SpeechEventKind,
        handle: UtteranceHandle,
        error: Optional[Exception] = None,
    ) -> None:
        listener = self._listener
        if listener is None:
            logger.debug("No listener for %s %r", kind.value, handle)
            return
        try:
            listener(SpeechEvent(kind=kind, handle=handle, error=error))
        except Exception:
            logger.exception("Speech listener failed on %s %r", kind.value, handle)
