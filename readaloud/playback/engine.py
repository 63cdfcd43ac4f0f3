"""
Continuous document narration: page-by-page speech with auto-advance.

The engine owns one :class:`NarrationSession` per open document and a
three-state playback machine (idle, speaking, paused).  For every page
it asks the :class:`TextExtractor` for narratable text, submits it to the
speech backend as one utterance, and, when the backend reports the
utterance finished, advances to the next page until the document ends.

Pages without text are skipped without touching the backend.  The skip
runs the same advance-or-stop decision as a real completion, in a loop,
so any number of consecutive empty pages is handled in one step.

All state changes run on a single :class:`ControlLoop`.  User commands
are *called* on it, backend events are *posted* to it.  Every utterance
is tagged with the run generation that submitted it; ``start()``,
``stop()`` and ``seek()`` begin a new generation, and events for any
other utterance are discarded.  This is what makes ``stop()``
authoritative: a ``finished`` event that arrives after a stop can never
advance the page.

Usage::

    from readaloud.playback import NarrationEngine

    engine = NarrationEngine(backend, voice_selector=selector)
    engine.open_document(PDFDocumentSource("book.pdf"))
    engine.start(0)
    ...
    engine.pause()
    engine.resume()
    engine.stop()
    engine.shutdown()
"""

import logging
from dataclasses import dataclass
from typing import Optional

from readaloud.errors import (
    EmptyDocumentError,
    NarrationError,
    NoDocumentError,
    SpeechBackendError,
    UnknownVoiceError,
)
from readaloud.text.extractor import TextExtractor
from readaloud.tts.base_backend import (
    SpeechBackend,
    SpeechEvent,
    SpeechEventKind,
    UtteranceHandle,
)
from readaloud.tts.voices import StaticVoiceCatalog, Voice, VoiceSelector
from reader_core.document.base_source import DocumentSource

from .config import PlaybackConfig
from .control import ControlLoop, InlineControlLoop
from .models import NarrationCallbacks, NarrationSession, PlaybackState, Utterance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ActiveUtterance:
    generation: int
    handle: UtteranceHandle
    page_index: Optional[int]


class NarrationEngine:
    """
    Drives narration of one document at a time over a speech backend.

    The backend is attached exclusively for the engine's lifetime;
    :meth:`shutdown` releases it.  The engine never closes the backend
    or the document source, both belong to the caller.

    Args:
        backend:        Speech backend to submit utterances to.
        extractor:      Page text extractor (default :class:`TextExtractor`).
        config:         Shared playback settings (default :class:`PlaybackConfig`).
        voice_selector: Voice selection (default: empty catalog, backend voice).
        control:        Serialized control context (default inline).
        callbacks:      Observers for state, page, voice, utterance and errors.

    Raises:
        SpeechBackendError: If another engine already owns *backend*.
    """

    def __init__(
        self,
        backend: SpeechBackend,
        extractor: Optional[TextExtractor] = None,
        config: Optional[PlaybackConfig] = None,
        voice_selector: Optional[VoiceSelector] = None,
        control: Optional[ControlLoop] = None,
        callbacks: Optional[NarrationCallbacks] = None,
    ):
        self.backend = backend
        self.extractor = extractor or TextExtractor()
        self.config = config or PlaybackConfig()
        self.voice_selector = voice_selector or VoiceSelector(StaticVoiceCatalog())
        self.control = control or InlineControlLoop()
        self.callbacks = callbacks or NarrationCallbacks()

        self._source: Optional[DocumentSource] = None
        self._session = NarrationSession(page_count=0)
        self._generation = 0
        self._active: Optional[_ActiveUtterance] = None
        self._resume_pending = False
        self._closed = False

        if self.config.voice_id is not None:
            try:
                self.voice_selector.choose(self.config.voice_id)
            except UnknownVoiceError:
                logger.warning(
                    "Configured voice '%s' is not available, using automatic selection",
                    self.config.voice_id,
                )
                self.config.voice_id = None

        backend.attach(self._on_backend_event)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._session.state

    @property
    def current_page_index(self) -> int:
        return self._session.current_page_index

    @property
    def session(self) -> Optional[NarrationSession]:
        """The session of the open document, or ``None``."""
        return self._session if self._source is not None else None

    @property
    def document(self) -> Optional[DocumentSource]:
        return self._source

    @property
    def selected_voice(self) -> Optional[Voice]:
        return self.voice_selector.active_voice

    @property
    def page_count(self) -> int:
        return self._session.page_count

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def open_document(self, source: DocumentSource) -> NarrationSession:
        """Stop any running narration and start a new session for *source*."""
        return self._call(self._open_document, source)

    def close_document(self) -> None:
        """Stop narration and discard the session."""
        self._call(self._close_document)

    def start(self, page_index: Optional[int] = None) -> None:
        """
        Narrate continuously from *page_index* (default: the current page).

        The index is clamped to the document.  Anything already playing
        is cancelled first.

        Raises:
            NoDocumentError:    If no document is open.
            EmptyDocumentError: If the document has no pages.
            SpeechBackendError: If the backend rejects the first utterance.
        """
        self._call(self._start, page_index, True)

    def read_page(self, page_index: Optional[int] = None) -> None:
        """Read a single page, then stop.  Raises like :meth:`start`."""
        self._call(self._start, page_index, False)

    def pause(self) -> None:
        """Pause speech.  No-op unless speaking."""
        self._call(self._pause)

    def resume(self) -> None:
        """
        Resume paused speech.  No-op unless paused.

        Raises:
            SpeechBackendError: If the backend cannot resume; the engine
                goes idle.
        """
        self._call(self._resume)

    def toggle_pause(self) -> PlaybackState:
        """Pause when speaking, resume when paused; returns the new state."""
        return self._call(self._toggle_pause)

    def stop(self) -> None:
        """Cancel speech immediately and end any read-through.  Idempotent."""
        self._call(self._stop)

    def seek(self, page_index: int) -> int:
        """
        Move to *page_index* (clamped).

        A continuous read in progress restarts from the new page; any
        other speech is stopped.  Returns the new page index.
        """
        return self._call(self._seek, page_index)

    def speak_sample(self, text: str) -> None:
        """Speak *text* once with the current settings; the page is unchanged."""
        self._call(self._speak_sample, text)

    def set_config(self, **changes) -> PlaybackConfig:
        """
        Change playback settings; they apply from the next utterance on.

        ``voice_id`` is routed through :meth:`select_voice`.

        Raises:
            ValueError:        For unknown settings or NaN values.
            UnknownVoiceError: For a voice id not in the catalog.
        """
        return self._call(self._set_config, changes)

    def select_voice(self, voice_id: Optional[str]) -> Optional[Voice]:
        """Choose a voice manually; ``None`` returns to automatic selection."""
        return self._call(self._select_voice, voice_id)

    def refresh_voices(self) -> Optional[Voice]:
        """Re-list the voice catalog, keeping a manual choice that still exists."""
        return self._call(self._refresh_voices)

    def shutdown(self) -> None:
        """Stop narration, release the backend and close the control loop."""
        if self._closed:
            return
        self.control.call(self._shutdown)
        self.control.close()

    def __enter__(self) -> "NarrationEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    def _call(self, fn, *args):
        if self._closed:
            raise NarrationError("Narration engine has been shut down")
        return self.control.call(fn, *args)

    # ------------------------------------------------------------------
    # Command implementations (control context only)
    # ------------------------------------------------------------------

    def _open_document(self, source: DocumentSource) -> NarrationSession:
        self._stop()
        self._source = source
        self._session = NarrationSession(page_count=source.page_count())
        logger.info("Document opened: %r (%d pages)", source, self._session.page_count)
        self._notify("on_page_changed", self._session.current_page_index)
        return self._session

    def _close_document(self) -> None:
        self._stop()
        if self._source is not None:
            logger.info("Document closed: %r", self._source)
        self._source = None
        self._session = NarrationSession(page_count=0)

    def _require_pages(self) -> NarrationSession:
        if self._source is None:
            raise NoDocumentError("No document is open")
        if self._session.is_empty:
            raise EmptyDocumentError(f"Document {self._source!r} has no pages")
        return self._session

    def _start(self, page_index: Optional[int], continuous: bool) -> None:
        session = self._require_pages()
        target = session.current_page_index if page_index is None else page_index
        target = session.clamp(target)

        self._halt()
        session.continuation_enabled = continuous
        self._set_page(target)
        logger.info(
            "%s from page %d/%d",
            "Narration started" if continuous else "Reading page",
            target + 1,
            session.page_count,
        )
        self._speak_current()

    def _pause(self) -> None:
        if self._session.state is not PlaybackState.SPEAKING:
            return
        self.backend.pause()
        self._set_state(PlaybackState.PAUSED)

    def _resume(self) -> None:
        if self._session.state is not PlaybackState.PAUSED:
            return
        if self._resume_pending:
            # The utterance ended while paused; continue with the next page
            self._resume_pending = False
            try:
                self.backend.resume()
                self._set_state(PlaybackState.SPEAKING)
                self._speak_current()
            except Exception:
                self._finish()
                raise
            return
        try:
            self.backend.resume()
        except SpeechBackendError:
            self._finish()
            raise
        self._set_state(PlaybackState.SPEAKING)

    def _toggle_pause(self) -> PlaybackState:
        if self._session.state is PlaybackState.SPEAKING:
            self._pause()
        elif self._session.state is PlaybackState.PAUSED:
            self._resume()
        return self._session.state

    def _stop(self) -> None:
        session = self._session
        session.continuation_enabled = False
        self._resume_pending = False
        self._generation += 1
        self._active = None
        if session.state is PlaybackState.IDLE:
            return

        self._set_state(PlaybackState.IDLE)
        logger.info("Narration stopped on page %d", session.current_page_index + 1)
        try:
            self.backend.stop()
        except SpeechBackendError as e:
            logger.warning("Backend stop failed: %s", e)

    def _halt(self) -> None:
        """Cancel whatever is playing before a new run begins."""
        if self._session.state is not PlaybackState.IDLE:
            self._stop()
        else:
            self._generation += 1
            self._active = None
            self._resume_pending = False

    def _seek(self, page_index: int) -> int:
        session = self._require_pages()
        target = session.clamp(page_index)
        if session.state is not PlaybackState.IDLE and session.continuation_enabled:
            self._start(target, True)
        else:
            self._stop()
            self._set_page(target)
        return session.current_page_index

    def _speak_sample(self, text: str) -> None:
        text = (text or "").strip()
        if not text:
            return
        self._halt()
        self._session.continuation_enabled = False
        self._submit(text, None)

    def _set_config(self, changes: dict) -> PlaybackConfig:
        changes = dict(changes)
        has_voice = "voice_id" in changes
        voice_id = changes.pop("voice_id", None)
        if has_voice and voice_id is not None and self.voice_selector.find(voice_id) is None:
            raise UnknownVoiceError(f"Unknown voice '{voice_id}'")

        self.config.update(**changes)
        if has_voice:
            self._select_voice(voice_id)
        logger.debug("Playback config: %s", self.config)
        return self.config.snapshot()

    def _select_voice(self, voice_id: Optional[str]) -> Optional[Voice]:
        before = self.voice_selector.active_voice
        voice = self.voice_selector.choose(voice_id)
        self.config.voice_id = voice_id
        if voice != before:
            self._notify("on_voice_changed", voice)
        return voice

    def _refresh_voices(self) -> Optional[Voice]:
        before = self.voice_selector.active_voice
        voice = self.voice_selector.refresh()
        manual = self.voice_selector.manual_choice
        self.config.voice_id = manual.id if manual is not None else None
        if voice != before:
            self._notify("on_voice_changed", voice)
        return voice

    def _shutdown(self) -> None:
        self._stop()
        self.backend.release(self._on_backend_event)
        self._closed = True
        logger.debug("Narration engine shut down")

    # ------------------------------------------------------------------
    # Per-page speech
    # ------------------------------------------------------------------

    def _speak_current(self) -> None:
        """
        Speak the current page, skipping forward over pages without text.

        Ends the run when continuation is off or the last page is passed.
        """
        session = self._session
        while True:
            index = session.current_page_index
            text = self.extractor.extract(self._source, index)
            if text.strip():
                self._submit(text, index)
                return

            logger.debug("Page %d has no narratable text, skipping", index + 1)
            if not self._advance():
                self._finish()
                return

    def _advance(self) -> bool:
        session = self._session
        if not (session.continuation_enabled and session.has_next_page):
            return False
        self._set_page(session.current_page_index + 1)
        return True

    def _submit(self, text: str, page_index: Optional[int]) -> None:
        utterance = self._build_utterance(text, page_index)
        try:
            handle = self.backend.speak(
                utterance.text,
                voice_id=utterance.voice_id,
                rate=utterance.rate,
                pitch=utterance.pitch,
                volume=utterance.volume,
            )
        except Exception:
            self._finish()
            raise

        self._active = _ActiveUtterance(self._generation, handle, page_index)
        self._set_state(PlaybackState.SPEAKING)
        logger.debug("Submitted %r for page %s", handle, page_index)
        self._notify("on_utterance", utterance)

    def _build_utterance(self, text: str, page_index: Optional[int]) -> Utterance:
        voice = self.voice_selector.active_voice
        return Utterance(
            text=text,
            page_index=page_index,
            voice_id=voice.id if voice is not None else None,
            rate=self.config.rate,
            pitch=self.config.pitch,
            volume=self.config.volume,
        )

    def _finish(self) -> None:
        session = self._session
        session.continuation_enabled = False
        self._active = None
        self._resume_pending = False
        if session.state is not PlaybackState.IDLE:
            logger.info("Narration finished on page %d", session.current_page_index + 1)
        self._set_state(PlaybackState.IDLE)

    # ------------------------------------------------------------------
    # Backend events
    # ------------------------------------------------------------------

    def _on_backend_event(self, event: SpeechEvent) -> None:
        # Runs on the backend's thread; only hand the event over
        self.control.post(self._handle_event, event)

    def _is_current(self, event: SpeechEvent) -> bool:
        active = self._active
        return (
            active is not None
            and active.generation == self._generation
            and active.handle == event.handle
        )

    def _handle_event(self, event: SpeechEvent) -> None:
        if not self._is_current(event):
            logger.debug("Discarding stale %s event for %r", event.kind.value, event.handle)
            return

        if event.kind is SpeechEventKind.STARTED:
            logger.debug("Speaking %r", event.handle)
            return

        self._active = None

        if event.kind is SpeechEventKind.FINISHED:
            self._on_finished()
        elif event.kind is SpeechEventKind.CANCELLED:
            logger.info("Speech cancelled by the backend")
            self._finish()
        elif event.kind is SpeechEventKind.FAILED:
            error = event.error or SpeechBackendError("Speech synthesis failed")
            logger.warning("Speech failed on page %s: %s", self._session.current_page_index + 1, error)
            self._finish()
            self._notify("on_error", error)

    def _on_finished(self) -> None:
        if not self._advance():
            self._finish()
            return

        if self._session.state is PlaybackState.PAUSED:
            self._resume_pending = True
            return

        try:
            self._speak_current()
        except Exception as e:
            logger.warning("Cannot continue to page %d: %s", self._session.current_page_index + 1, e)
            self._finish()
            self._notify("on_error", e)

    # ------------------------------------------------------------------
    # Notification helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: PlaybackState) -> None:
        if self._session.state is state:
            return
        self._session.state = state
        logger.debug("State: %s", state.value)
        self._notify("on_state_changed", state)

    def _set_page(self, page_index: int) -> None:
        if self._session.current_page_index == page_index:
            return
        self._session.current_page_index = page_index
        self._notify("on_page_changed", page_index)

    def _notify(self, name: str, *args) -> None:
        callback = getattr(self.callbacks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.warning("Callback %s failed", name, exc_info=True)

    def __repr__(self) -> str:
        return (
            f"NarrationEngine(state={self.state.value}, "
            f"page={self.current_page_index}, pages={self.page_count})"
        )
