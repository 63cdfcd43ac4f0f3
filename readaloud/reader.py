"""
Reader assembly: synthesizer, audio backend, voices and narration engine.

:class:`DocumentReader` wires the pieces a front end needs from a single
:class:`ReaderConfig`, the way the command-line reader uses them::

    reader = DocumentReader(ReaderConfig(engine="piper"))
    reader.open("book.pdf")
    reader.engine.start(0)
    ...
    reader.close()
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from reader_core.document import DocumentSource, MemoryDocumentSource, PDFDocumentSource

from .playback.config import PlaybackConfig
from .playback.control import InlineControlLoop, ThreadedControlLoop
from .playback.engine import NarrationEngine
from .playback.models import NarrationCallbacks
from .text.extractor import TextExtractor
from .tts.base_backend import SpeechBackend
from .tts.base_engine import BaseTTSEngine
from .tts.voices import (
    DEFAULT_LANGUAGE_PREFERENCES,
    FALLBACK_LANGUAGE,
    EngineVoiceCatalog,
    VoiceSelector,
)

logger = logging.getLogger(__name__)

ENGINE_NAMES = ("kokoro", "piper")


@dataclass
class ReaderConfig:
    """
    Options for assembling a reader.

    Attributes:
        engine:              Synthesizer name, ``"kokoro"`` or ``"piper"``.
        voice_dir:           Piper voice model directory (``None`` for default).
        preferred_languages: Language prefixes tried in order for automatic
                             voice selection.
        fallback_language:   Language tried when no preference matches.
        clean_text:          Run the speech preprocessor over page text.
        strip_references:    Remove ``[N]``-style citation markers.
        poll_interval:       Seconds between playback-completion checks.
        threaded:            Run the engine on its own control thread.
    """

    engine: str = "kokoro"
    voice_dir: Optional[Path] = None
    preferred_languages: Tuple[str, ...] = DEFAULT_LANGUAGE_PREFERENCES
    fallback_language: str = FALLBACK_LANGUAGE
    clean_text: bool = True
    strip_references: bool = False
    poll_interval: float = 0.05
    threaded: bool = True


def create_tts_engine(name: str, voice_dir: Optional[Path] = None) -> BaseTTSEngine:
    """
    Instantiate a synthesizer by name.

    Raises:
        ValueError:  For an unknown engine name.
        ImportError: If the engine's package is not installed.
    """
    name = name.lower()
    if name == "kokoro":
        from .tts.kokoro_engine import KokoroEngine

        return KokoroEngine()
    if name == "piper":
        from .tts.model_manager import ModelManager
        from .tts.piper_engine import PiperEngine

        return PiperEngine(ModelManager(voice_dir=voice_dir))
    raise ValueError(f"Unknown TTS engine '{name}'. Choose from: {', '.join(ENGINE_NAMES)}")


def open_source(path: Union[str, Path]) -> DocumentSource:
    """
    Open a document by file extension: ``.pdf`` or plain text.

    Plain-text files use form feeds as page breaks.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError:        For an unsupported file type.
        RuntimeError:      If the PDF cannot be opened.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return PDFDocumentSource(path)
    if suffix in (".txt", ".text"):
        return MemoryDocumentSource.from_text_file(path)
    raise ValueError(f"Unsupported document type '{suffix}': {path}")


class DocumentReader:
    """
    Owns a synthesizer, a speech backend and a narration engine.

    Args:
        config:     Assembly options.
        playback:   Initial playback settings (rate, pitch, volume, voice).
        callbacks:  Engine observers.
        tts_engine: Synthesizer to use instead of building one from *config*.
        backend:    Speech backend to use instead of the synthesized one.
    """

    def __init__(
        self,
        config: Optional[ReaderConfig] = None,
        playback: Optional[PlaybackConfig] = None,
        callbacks: Optional[NarrationCallbacks] = None,
        tts_engine: Optional[BaseTTSEngine] = None,
        backend: Optional[SpeechBackend] = None,
    ):
        self.config = config or ReaderConfig()
        self.tts_engine = tts_engine or create_tts_engine(
            self.config.engine, voice_dir=self.config.voice_dir
        )

        if backend is None:
            from .tts.synth_backend import SynthesizedSpeechBackend

            backend = SynthesizedSpeechBackend(
                self.tts_engine, poll_interval=self.config.poll_interval
            )
        self.backend = backend

        selector = VoiceSelector(
            EngineVoiceCatalog(self.tts_engine),
            preferred_languages=self.config.preferred_languages,
            fallback_language=self.config.fallback_language,
        )
        control = ThreadedControlLoop() if self.config.threaded else InlineControlLoop()
        self.engine = NarrationEngine(
            backend,
            extractor=TextExtractor(
                clean=self.config.clean_text,
                strip_references=self.config.strip_references,
            ),
            config=playback,
            voice_selector=selector,
            control=control,
            callbacks=callbacks,
        )
        self.source: Optional[DocumentSource] = None
        logger.info("Reader ready: %s, voice %s", self.tts_engine.engine_name, self.engine.selected_voice)

    def open(self, path: Union[str, Path]) -> DocumentSource:
        """Open *path* and make it the engine's document, closing the previous one."""
        source = open_source(path)
        self.engine.open_document(source)
        self._close_source()
        self.source = source
        return source

    def close(self) -> None:
        """Shut down the engine and release audio and document resources."""
        self.engine.shutdown()
        self.backend.close()
        self._close_source()

    def _close_source(self) -> None:
        close = getattr(self.source, "close", None)
        if close is not None:
            close()
        self.source = None

    def __enter__(self) -> "DocumentReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DocumentReader(engine={self.tts_engine.engine_name}, source={self.source!r})"
