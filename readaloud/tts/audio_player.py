"""
WAV playback through the pygame mixer.

One utterance plays at a time on a dedicated mixer channel, which
supports immediate pause, resume and stop.
"""

import io
import logging
import threading
from typing import Optional

import pygame

from readaloud.errors import SpeechBackendError

logger = logging.getLogger(__name__)


class AudioPlayer:
    """
    Plays WAV byte strings with pause/resume/stop control.

    Usage::

        player = AudioPlayer()
        player.open()
        player.play(wav_bytes, volume=0.8)
        while player.is_playing():
            ...
        player.close()
    """

    def __init__(self, frequency: int = 24000):
        self._frequency = frequency
        self._channel: Optional["pygame.mixer.Channel"] = None
        self._paused = False
        self._lock = threading.Lock()

    def open(self) -> None:
        """
        Initialise the mixer if needed.

        Raises:
            SpeechBackendError: If no audio device is available.
        """
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init(frequency=self._frequency, size=-16, channels=1)
        except pygame.error as e:
            raise SpeechBackendError(f"Audio output unavailable: {e}") from e
        logger.debug("Mixer initialised: %s", pygame.mixer.get_init())

    def play(self, wav_bytes: bytes, volume: float = 1.0) -> None:
        """Start playing *wav_bytes*, replacing anything currently playing."""
        self.open()
        try:
            sound = pygame.mixer.Sound(file=io.BytesIO(wav_bytes))
        except pygame.error as e:
            raise SpeechBackendError(f"Cannot decode synthesized audio: {e}") from e

        with self._lock:
            if self._channel is not None:
                self._channel.stop()
            self._paused = False
            self._channel = sound.play()
            if self._channel is None:
                raise SpeechBackendError("No free mixer channel")
            self._channel.set_volume(max(0.0, min(1.0, volume)))

    def pause(self) -> None:
        with self._lock:
            if self._channel is not None and not self._paused:
                self._channel.pause()
                self._paused = True

    def resume(self) -> None:
        with self._lock:
            if self._channel is not None and self._paused:
                self._channel.unpause()
                self._paused = False

    def stop(self) -> None:
        with self._lock:
            if self._channel is not None:
                self._channel.stop()
            self._channel = None
            self._paused = False

    def is_playing(self) -> bool:
        """True while a sound is playing or paused."""
        with self._lock:
            if self._channel is None:
                return False
            return self._paused or bool(self._channel.get_busy())

    def close(self) -> None:
        self.stop()
        if pygame.mixer.get_init():
            pygame.mixer.quit()

    def __repr__(self) -> str:
        return f"AudioPlayer(frequency={self._frequency}, paused={self._paused})"
