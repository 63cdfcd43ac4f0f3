"""
Speech backend built on an offline synthesizer and the pygame mixer.

A single worker thread takes utterances in submission order:
synthesize → shape pitch → play → wait, emitting events as it goes.
``stop()`` cancels everything submitted so far and silences playback
immediately; the worker reports those utterances as cancelled.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional

from readaloud.errors import SpeechBackendError
from readaloud.playback.config import rate_to_speed_factor

from .audio_effects import pitch_shift_wav
from .audio_player import AudioPlayer
from .base_backend import SpeechBackend, SpeechEventKind, UtteranceHandle
from .base_engine import BaseTTSEngine

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


@dataclass(frozen=True)
class _SpeechJob:
    handle: UtteranceHandle
    text: str
    voice_id: Optional[str]
    speed_factor: float
    pitch: float
    volume: float


class SynthesizedSpeechBackend(SpeechBackend):
    """
    Asynchronous speech backend over a :class:`BaseTTSEngine`.

    Usage::

        backend = SynthesizedSpeechBackend(KokoroEngine())
        backend.attach(listener)
        handle = backend.speak("Hello", voice_id="af_heart")
        ...
        backend.close()

    Args:
        engine:        Synthesizer producing WAV bytes.
        player:        Playback device (a new :class:`AudioPlayer` if omitted).
        poll_interval: Seconds between playback-completion checks.
    """

    def __init__(
        self,
        engine: BaseTTSEngine,
        player: Optional[AudioPlayer] = None,
        poll_interval: float = 0.05,
    ):
        super().__init__()
        self.engine = engine
        self._player = player or AudioPlayer(frequency=engine.sample_rate)
        self._player.open()
        self._poll_interval = poll_interval

        self._jobs: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._last_issued = 0
        self._cancel_through = 0
        self._paused = False
        self._closed = False

        self._worker = threading.Thread(
            target=self._run, name="speech-backend", daemon=True
        )
        self._worker.start()

    # ------------------------------------------------------------------
    # SpeechBackend
    # ------------------------------------------------------------------

    def _submit(self, handle, text, voice_id, rate, pitch, volume) -> None:
        with self._lock:
            if self._closed:
                raise SpeechBackendError("Speech backend is closed")
            self._last_issued = handle.id

        speed = rate_to_speed_factor(rate)
        self._jobs.put(_SpeechJob(handle, text, voice_id, speed, pitch, volume))

    def pause(self) -> None:
        # Remembered so that audio still being synthesized starts paused
        with self._lock:
            self._paused = True
            self._player.pause()

    def resume(self) -> None:
        if self._closed:
            raise SpeechBackendError("Speech backend is closed")
        with self._lock:
            self._paused = False
            self._player.resume()

    def stop(self) -> None:
        with self._lock:
            self._cancel_through = self._last_issued
            self._paused = False
        self._player.stop()

    def close(self) -> None:
        """Cancel all speech, stop the worker and release the audio device."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.stop()
        self._jobs.put(_SHUTDOWN)
        self._worker.join(timeout=5.0)
        self._player.close()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _is_cancelled(self, handle: UtteranceHandle) -> bool:
        with self._lock:
            return handle.id <= self._cancel_through

    def _run(self) -> None:
        while True:
            job = self._jobs.get()
            if job is _SHUTDOWN:
                break
            self._process(job)

    def _process(self, job: _SpeechJob) -> None:
        handle = job.handle
        if self._is_cancelled(handle):
            self._emit(SpeechEventKind.CANCELLED, handle)
            return

        t0 = time.perf_counter()
        try:
            wav = self.engine.synthesize(job.text, speed_factor=job.speed_factor, voice=job.voice_id)
            wav = pitch_shift_wav(wav, job.pitch)
        except Exception as e:
            logger.warning("Synthesis failed for %r: %s", handle, e)
            self._emit(SpeechEventKind.FAILED, handle, SpeechBackendError(str(e)))
            return

        logger.debug(
            "Synthesised %r: %.1fs audio in %.2fs",
            handle,
            self.engine.get_audio_duration(wav),
            time.perf_counter() - t0,
        )

        if self._is_cancelled(handle):
            self._emit(SpeechEventKind.CANCELLED, handle)
            return

        try:
            self._player.play(wav, volume=job.volume)
        except SpeechBackendError as e:
            logger.warning("Playback failed for %r: %s", handle, e)
            self._emit(SpeechEventKind.FAILED, handle, e)
            return

        with self._lock:
            if self._paused:
                self._player.pause()

        self._emit(SpeechEventKind.STARTED, handle)

        while self._player.is_playing():
            if self._is_cancelled(handle):
                self._player.stop()
                break
            time.sleep(self._poll_interval)

        if self._is_cancelled(handle):
            self._emit(SpeechEventKind.CANCELLED, handle)
        else:
            self._emit(SpeechEventKind.FINISHED, handle)

    def __repr__(self) -> str:
        return f"SynthesizedSpeechBackend(engine={self.engine.engine_name}, closed={self._closed})"
