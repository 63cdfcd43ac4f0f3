"""Shared fixtures for the read-aloud tests."""

import io
import wave
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pytest

from readaloud.errors import SpeechBackendError
from readaloud.playback.engine import NarrationEngine
from readaloud.playback.models import NarrationCallbacks
from readaloud.text.extractor import TextExtractor
from readaloud.tts.base_backend import SpeechBackend, SpeechEventKind
from readaloud.tts.base_engine import BaseTTSEngine
from readaloud.tts.voices import StaticVoiceCatalog, Voice, VoiceSelector


@dataclass
class SpokenCall:
    handle: object
    text: str
    voice_id: Optional[str]
    rate: float
    pitch: float
    volume: float


class FakeSpeechBackend(SpeechBackend):
    """
    Records every request and lets the test fire events by hand.

    ``stop()`` reports the current utterance as cancelled, like a real
    backend does, so tests see the late cancellation event.
    """

    def __init__(self, cancel_on_stop: bool = True):
        super().__init__()
        self.spoken: List[SpokenCall] = []
        self.calls: List[str] = []
        self.cancel_on_stop = cancel_on_stop
        self.fail_next: Optional[Exception] = None
        self.resume_error: Optional[Exception] = None

    @property
    def texts(self) -> List[str]:
        return [call.text for call in self.spoken]

    @property
    def last(self) -> SpokenCall:
        return self.spoken[-1]

    def _submit(self, handle, text, voice_id, rate, pitch, volume):
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        self.spoken.append(SpokenCall(handle, text, voice_id, rate, pitch, volume))

    def pause(self):
        self.calls.append("pause")

    def resume(self):
        self.calls.append("resume")
        if self.resume_error is not None:
            raise self.resume_error

    def stop(self):
        self.calls.append("stop")
        if self.cancel_on_stop and self.spoken:
            self._emit(SpeechEventKind.CANCELLED, self.last.handle)

    # -- Event helpers ------------------------------------------------------

    def start(self, handle=None):
        self._emit(SpeechEventKind.STARTED, handle or self.last.handle)

    def finish(self, handle=None):
        self._emit(SpeechEventKind.FINISHED, handle or self.last.handle)

    def cancel(self, handle=None):
        self._emit(SpeechEventKind.CANCELLED, handle or self.last.handle)

    def fail(self, handle=None, error=None):
        self._emit(
            SpeechEventKind.FAILED,
            handle or self.last.handle,
            error or SpeechBackendError("synthesis failed"),
        )

    def finish_all(self, limit: int = 100):
        """Finish utterances until the engine stops submitting new ones."""
        for _ in range(limit):
            count = len(self.spoken)
            self.finish()
            if len(self.spoken) == count:
                return


class FakeTTSEngine(BaseTTSEngine):
    """Synthesizer producing a short sine tone and recording its calls."""

    def __init__(self, voices=None, error: Optional[Exception] = None, seconds: float = 0.05):
        self.requests = []
        self.error = error
        self.seconds = seconds
        self._voices = list(voices or [])

    @property
    def sample_rate(self) -> int:
        return 16000

    @property
    def engine_name(self) -> str:
        return "Fake"

    def list_voices(self):
        return list(self._voices)

    def synthesize(self, text, speed_factor=1.0, voice=None):
        self.requests.append((text, speed_factor, voice))
        if self.error is not None:
            raise self.error
        return sine_wav(self.seconds, self.sample_rate)


def sine_wav(seconds: float, sample_rate: int = 16000, freq: float = 220.0) -> bytes:
    """16-bit mono WAV bytes of a sine tone."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    pcm = (0.3 * 32767 * np.sin(2 * np.pi * freq * t)).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


class CallbackRecorder:
    """Collects every engine notification as ``(name, value)`` pairs."""

    def __init__(self):
        self.events = []

    def callbacks(self) -> NarrationCallbacks:
        return NarrationCallbacks(
            on_state_changed=lambda s: self.events.append(("state", s)),
            on_page_changed=lambda i: self.events.append(("page", i)),
            on_voice_changed=lambda v: self.events.append(("voice", v)),
            on_utterance=lambda u: self.events.append(("utterance", u)),
            on_error=lambda e: self.events.append(("error", e)),
        )

    def of(self, name):
        return [value for kind, value in self.events if kind == name]


@pytest.fixture
def backend():
    return FakeSpeechBackend()


@pytest.fixture
def voices():
    return [
        Voice(id="1", display_name="English", language_tag="en-US"),
        Voice(id="2", display_name="Russian", language_tag="ru-RU"),
    ]


@pytest.fixture
def recorder():
    return CallbackRecorder()


@pytest.fixture
def engine(backend, voices, recorder):
    """Engine on the inline control loop with a two-voice catalog."""
    eng = NarrationEngine(
        backend,
        extractor=TextExtractor(clean=False),
        voice_selector=VoiceSelector(StaticVoiceCatalog(voices), ["bg", "ru", "en"]),
        callbacks=recorder.callbacks(),
    )
    yield eng
    eng.shutdown()
