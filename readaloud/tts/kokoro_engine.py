"""
Kokoro TTS engine wrapper.

Synthesises text using the Kokoro neural TTS model.  Runs locally on
CPU or GPU via PyTorch, no API keys required.

The model (~82 MB) auto-downloads from HuggingFace on first use
and is cached locally.  Kokoro needs one pipeline per language; the
language is encoded in the first letter of every voice id.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .base_engine import BaseTTSEngine
from .voices import Voice

logger = logging.getLogger(__name__)

# Kokoro native sample rate
_KOKORO_SAMPLE_RATE = 24000

# Kokoro language code → BCP 47 language tag
KOKORO_LANGUAGES = {
    "a": "en-US",
    "b": "en-GB",
    "e": "es-ES",
    "f": "fr-FR",
    "h": "hi-IN",
    "i": "it-IT",
    "j": "ja-JP",
    "p": "pt-BR",
    "z": "zh-CN",
}

# Available Kokoro voices; the id prefix is <language code><gender>_
KOKORO_VOICES = {
    # American English
    "af_heart": {"gender": "Female", "name": "Heart"},
    "af_bella": {"gender": "Female", "name": "Bella"},
    "af_nicole": {"gender": "Female", "name": "Nicole"},
    "af_sarah": {"gender": "Female", "name": "Sarah"},
    "af_sky": {"gender": "Female", "name": "Sky"},
    "am_adam": {"gender": "Male", "name": "Adam"},
    "am_michael": {"gender": "Male", "name": "Michael"},
    # British English
    "bf_emma": {"gender": "Female", "name": "Emma"},
    "bf_isabella": {"gender": "Female", "name": "Isabella"},
    "bm_george": {"gender": "Male", "name": "George"},
    "bm_lewis": {"gender": "Male", "name": "Lewis"},
    # Other languages
    "ef_dora": {"gender": "Female", "name": "Dora"},
    "ff_siwis": {"gender": "Female", "name": "Siwis"},
    "if_sara": {"gender": "Female", "name": "Sara"},
    "pf_dora": {"gender": "Female", "name": "Dora"},
}

DEFAULT_KOKORO_VOICE = "af_heart"


def kokoro_language_tag(voice_id: str) -> str:
    """Language tag for a Kokoro voice id (``"bf_emma"`` → ``"en-GB"``)."""
    return KOKORO_LANGUAGES.get(voice_id[:1], "en-US")


class KokoroEngine(BaseTTSEngine):
    """
    Expressive neural TTS via the Kokoro model.

    Usage::

        engine = KokoroEngine(voice="af_heart")
        wav_bytes = engine.synthesize("Hello world", speed_factor=1.0)
        wav_bytes = engine.synthesize("Good morning", voice="bf_emma")

    Pipelines are loaded lazily on the first synthesis in each language.
    """

    def __init__(self, voice: str = DEFAULT_KOKORO_VOICE):
        """
        Initialise the Kokoro engine.

        Args:
            voice: Default voice identifier (see :data:`KOKORO_VOICES`).

        Raises:
            ImportError: If ``kokoro`` is not installed.
        """
        self._voice = voice
        self._pipelines: Dict[str, object] = {}

        try:
            import kokoro  # noqa: F401
        except ImportError:
            raise ImportError(
                "kokoro is required for the Kokoro TTS engine. "
                "Install with: pip install kokoro soundfile"
            )

    def _pipeline_for(self, voice: str):
        """Lazy-load the Kokoro pipeline for the voice's language."""
        lang_code = voice[:1] if voice[:1] in KOKORO_LANGUAGES else "a"
        pipeline = self._pipelines.get(lang_code)
        if pipeline is None:
            logger.info("Loading Kokoro TTS pipeline (lang=%s)...", lang_code)

            from kokoro import KPipeline

            pipeline = KPipeline(lang_code=lang_code)
            self._pipelines[lang_code] = pipeline
            logger.info("Kokoro pipeline ready")
        return pipeline

    @property
    def sample_rate(self) -> int:
        return _KOKORO_SAMPLE_RATE

    @property
    def engine_name(self) -> str:
        return f"Kokoro ({self._voice})"

    @property
    def voice(self) -> str:
        return self._voice

    @voice.setter
    def voice(self, value: str):
        self._voice = value

    def list_voices(self) -> List[Voice]:
        return [
            Voice(
                id=voice_id,
                display_name=f"{info['name']} ({info['gender']})",
                language_tag=kokoro_language_tag(voice_id),
            )
            for voice_id, info in KOKORO_VOICES.items()
        ]

    def synthesize(
        self,
        text: str,
        speed_factor: float = 1.0,
        voice: Optional[str] = None,
    ) -> bytes:
        """
        Synthesise *text* to WAV bytes using Kokoro.

        Returns:
            Complete WAV file as bytes (16-bit mono PCM at 24 kHz).

        Raises:
            RuntimeError: If the Kokoro pipeline fails.
        """
        if not text or not text.strip():
            return self.generate_silence(0.0)

        voice = voice or self._voice
        pipeline = self._pipeline_for(voice)
        speed = max(0.1, speed_factor)

        # Kokoro yields chunks for long text; collect all audio
        audio_chunks = []
        try:
            for _graphemes, _phonemes, audio_chunk in pipeline(text, voice=voice, speed=speed):
                if audio_chunk is not None:
                    audio_chunks.append(np.asarray(audio_chunk, dtype=np.float32))
        except Exception as e:
            raise RuntimeError(f"Kokoro synthesis failed: {e}") from e

        if not audio_chunks:
            return self.generate_silence(0.0)

        # Convert float32 [-1, 1] → int16 PCM
        audio = np.clip(np.concatenate(audio_chunks), -1.0, 1.0)
        pcm_data = (audio * 32767).astype(np.int16).tobytes()

        return self._wrap_wav(pcm_data)

    def __repr__(self) -> str:
        return f"KokoroEngine(voice={self._voice}, rate={_KOKORO_SAMPLE_RATE}Hz, 16bit, mono)"
