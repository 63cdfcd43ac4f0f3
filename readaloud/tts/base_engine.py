"""
Abstract base class for TTS synthesis engines.

Provides a unified interface so the speech backend can swap between
different offline synthesizers.
"""

import io
import wave
from abc import ABC, abstractmethod
from typing import List, Optional

from .voices import Voice


class BaseTTSEngine(ABC):
    """
    Common interface for the synthesizers behind the speech backend.

    Subclasses must implement :meth:`synthesize` and :meth:`list_voices`
    and expose ``sample_rate``, ``sample_width`` and ``channels``.
    """

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Audio sample rate in Hz of the default voice."""

    @property
    def sample_width(self) -> int:
        """Sample width in bytes (16-bit PCM)."""
        return 2

    @property
    def channels(self) -> int:
        """Number of audio channels (mono)."""
        return 1

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine identifier."""

    @abstractmethod
    def synthesize(
        self,
        text: str,
        speed_factor: float = 1.0,
        voice: Optional[str] = None,
    ) -> bytes:
        """
        Synthesise *text* to WAV bytes.

        Args:
            text:         Text to speak.
            speed_factor: Speed multiplier (>1 = faster, <1 = slower).
            voice:        Voice id from :meth:`list_voices`, or ``None``
                          for the engine's default voice.

        Returns:
            Complete WAV file as bytes (16-bit mono PCM).
        """

    @abstractmethod
    def list_voices(self) -> List[Voice]:
        """Voices this engine can synthesise with."""

    def generate_silence(self, duration_seconds: float) -> bytes:
        """Generate a WAV file containing *duration_seconds* of silence."""
        num_samples = int(self.sample_rate * max(0, duration_seconds))
        pcm_data = b"\x00\x00" * num_samples * self.channels
        return self._wrap_wav(pcm_data)

    @staticmethod
    def get_audio_duration(wav_bytes: bytes) -> float:
        """Return the duration in seconds of a WAV byte string (0.0 if unreadable)."""
        try:
            with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
                rate = wf.getframerate()
                return wf.getnframes() / rate if rate > 0 else 0.0
        except (wave.Error, EOFError):
            return 0.0

    def _wrap_wav(self, pcm_data: bytes, sample_rate: Optional[int] = None) -> bytes:
        """Wrap raw PCM in a WAV container."""
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(sample_rate or self.sample_rate)
            wf.writeframes(pcm_data)
        return buf.getvalue()
