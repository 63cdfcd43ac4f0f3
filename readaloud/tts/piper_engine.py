"""
Piper TTS engine wrapper.

Synthesises text to raw WAV audio with variable speed control.  Each
Piper voice is a separate ONNX model; models are downloaded through
:class:`ModelManager` and loaded on first use.
"""

import logging
from typing import Dict, List, Optional

from .base_engine import BaseTTSEngine
from .model_manager import KNOWN_VOICES, ModelManager, piper_language_tag
from .voices import Voice

logger = logging.getLogger(__name__)

DEFAULT_PIPER_VOICE = "ru_RU-irina-medium"

# Typical Piper model rate, used until a model is loaded
_PIPER_DEFAULT_RATE = 22050


class PiperEngine(BaseTTSEngine):
    """
    Wraps piper-tts for speech synthesis with speed control.

    Usage::

        engine = PiperEngine(ModelManager(), voice="en_US-lessac-medium")
        wav_bytes = engine.synthesize("Hello world", speed_factor=0.9)
    """

    def __init__(
        self,
        model_manager: Optional[ModelManager] = None,
        voice: str = DEFAULT_PIPER_VOICE,
    ):
        try:
            from piper import PiperVoice  # noqa: F401
        except ImportError:
            raise ImportError(
                "piper-tts is required.  Install with: pip install piper-tts"
            )

        self._manager = model_manager or ModelManager()
        self._voice = voice
        self._loaded: Dict[str, object] = {}

    def _load(self, voice_name: str):
        """Load (downloading if needed) the Piper model for *voice_name*."""
        model = self._loaded.get(voice_name)
        if model is None:
            from piper import PiperVoice

            path = self._manager.ensure_voice_available(voice_name)
            logger.info("Loading Piper voice: %s", voice_name)
            model = PiperVoice.load(str(path))
            self._loaded[voice_name] = model
        return model

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def sample_rate(self) -> int:
        model = self._loaded.get(self._voice)
        return model.config.sample_rate if model is not None else _PIPER_DEFAULT_RATE

    @property
    def engine_name(self) -> str:
        return f"Piper ({self._voice})"

    def list_voices(self) -> List[Voice]:
        names = list(KNOWN_VOICES)
        names += [n for n in self._manager.list_available_voices() if n not in KNOWN_VOICES]
        return [
            Voice(
                id=name,
                display_name=name.split("-")[1].replace("_", " ").title()
                if "-" in name
                else name,
                language_tag=piper_language_tag(name),
            )
            for name in names
        ]

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(
        self,
        text: str,
        speed_factor: float = 1.0,
        voice: Optional[str] = None,
    ) -> bytes:
        """
        Synthesise *text* to WAV bytes.

        Returns:
            Complete WAV file as bytes (16-bit mono PCM at the model's rate).
        """
        if not text or not text.strip():
            return self.generate_silence(0.0)

        model = self._load(voice or self._voice)
        sample_rate = model.config.sample_rate

        # Piper length_scale: >1 = slower, <1 = faster
        model.config.length_scale = 1.0 / max(speed_factor, 0.1)

        # synthesize() yields one AudioChunk per sentence
        pcm_data = b"".join(chunk.audio_int16_bytes for chunk in model.synthesize(text))

        return self._wrap_wav(pcm_data, sample_rate=sample_rate)

    def __repr__(self) -> str:
        return f"PiperEngine(voice={self._voice}, loaded={list(self._loaded)})"
