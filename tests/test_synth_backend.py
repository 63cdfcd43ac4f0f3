"""Tests for the worker-thread speech backend (fake synthesizer and player)."""

import threading

import pytest

from conftest import FakeTTSEngine
from readaloud.errors import SpeechBackendError
from readaloud.tts.base_backend import SpeechEventKind
from readaloud.tts.synth_backend import SynthesizedSpeechBackend


class FakePlayer:
    """Stands in for the pygame mixer; playback ends when ``release`` is set."""

    def __init__(self, auto_finish=True):
        self.played = []
        self.calls = []
        self.playing = False
        self.paused = False
        self.closed = False
        self.release = threading.Event()
        if auto_finish:
            self.release.set()

    def open(self):
        self.calls.append("open")

    def play(self, wav_bytes, volume=1.0):
        self.played.append((wav_bytes, volume))
        self.playing = True
        self.paused = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def stop(self):
        self.calls.append("stop")
        self.playing = False
        self.paused = False

    def is_playing(self):
        if self.playing and self.release.is_set() and not self.paused:
            self.playing = False
        return self.playing

    def close(self):
        self.closed = True


class EventCollector:
    def __init__(self):
        self.events = []
        self._cond = threading.Condition()

    def __call__(self, event):
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def kinds(self):
        return [e.kind for e in self.events]

    def wait_for(self, kind, count=1, timeout=5.0):
        with self._cond:
            done = self._cond.wait_for(
                lambda: sum(1 for e in self.events if e.kind is kind) >= count,
                timeout,
            )
        assert done, f"timed out waiting for {kind}; got {self.kinds()}"


@pytest.fixture
def collector():
    return EventCollector()


def _backend(collector, engine=None, player=None):
    backend = SynthesizedSpeechBackend(
        engine or FakeTTSEngine(), player=player or FakePlayer(), poll_interval=0.005
    )
    backend.attach(collector)
    return backend


def test_speak_reports_started_then_finished(collector):
    engine = FakeTTSEngine()
    player = FakePlayer()
    backend = _backend(collector, engine, player)
    try:
        handle = backend.speak("Hello", voice_id="v1", rate=0.75, volume=0.4)
        collector.wait_for(SpeechEventKind.FINISHED)
    finally:
        backend.close()

    assert collector.kinds() == [SpeechEventKind.STARTED, SpeechEventKind.FINISHED]
    assert all(e.handle == handle for e in collector.events)
    text, speed, voice = engine.requests[0]
    assert (text, voice) == ("Hello", "v1")
    assert speed == pytest.approx(1.5)
    assert player.played[0][1] == 0.4


def test_handles_increase(collector):
    backend = _backend(collector)
    try:
        first = backend.speak("one")
        second = backend.speak("two")
        collector.wait_for(SpeechEventKind.FINISHED, count=2)
    finally:
        backend.close()
    assert second.id > first.id
    finished = [e.handle for e in collector.events if e.kind is SpeechEventKind.FINISHED]
    assert finished == [first, second]


def test_stop_cancels_playing_and_queued(collector):
    player = FakePlayer(auto_finish=False)
    backend = _backend(collector, player=player)
    try:
        first = backend.speak("playing")
        second = backend.speak("queued")
        collector.wait_for(SpeechEventKind.STARTED)
        backend.stop()
        collector.wait_for(SpeechEventKind.CANCELLED, count=2)
    finally:
        backend.close()

    cancelled = [e.handle for e in collector.events if e.kind is SpeechEventKind.CANCELLED]
    assert cancelled == [first, second]
    assert SpeechEventKind.FINISHED not in collector.kinds()
    assert len(player.played) == 1


def test_speech_after_stop_plays(collector):
    player = FakePlayer(auto_finish=False)
    backend = _backend(collector, player=player)
    try:
        backend.speak("cancelled")
        collector.wait_for(SpeechEventKind.STARTED)
        backend.stop()
        collector.wait_for(SpeechEventKind.CANCELLED)

        player.release.set()
        handle = backend.speak("after stop")
        collector.wait_for(SpeechEventKind.FINISHED)
    finally:
        backend.close()
    assert collector.events[-1].handle == handle


def test_synthesis_failure_reports_failed(collector):
    engine = FakeTTSEngine(error=RuntimeError("model missing"))
    backend = _backend(collector, engine)
    try:
        backend.speak("Hello")
        collector.wait_for(SpeechEventKind.FAILED)
    finally:
        backend.close()

    event = collector.events[-1]
    assert isinstance(event.error, SpeechBackendError)
    assert "model missing" in str(event.error)


def test_pitch_shift_path(collector):
    player = FakePlayer()
    backend = _backend(collector, FakeTTSEngine(seconds=0.3), player)
    try:
        backend.speak("Higher", pitch=1.5)
        collector.wait_for(SpeechEventKind.FINISHED)
    finally:
        backend.close()
    assert player.played[0][0][:4] == b"RIFF"


def test_closed_backend_rejects_speech(collector):
    player = FakePlayer()
    backend = _backend(collector, player=player)
    backend.close()
    assert player.closed
    with pytest.raises(SpeechBackendError):
        backend.speak("too late")
    backend.close()


def test_single_listener(collector):
    backend = _backend(collector)
    try:
        with pytest.raises(SpeechBackendError):
            backend.attach(EventCollector())
        backend.release(collector)
        backend.attach(EventCollector())
    finally:
        backend.close()


class GatedTTSEngine(FakeTTSEngine):
    """Synthesis blocks until the test opens the gate."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.gate = threading.Event()

    def synthesize(self, text, speed_factor=1.0, voice=None):
        self.entered.set()
        assert self.gate.wait(5.0)
        return super().synthesize(text, speed_factor=speed_factor, voice=voice)


def test_pause_during_synthesis_holds_playback(collector):
    engine = GatedTTSEngine()
    player = FakePlayer()
    backend = _backend(collector, engine, player)
    try:
        backend.speak("Long page")
        assert engine.entered.wait(5.0)
        backend.pause()
        engine.gate.set()
        collector.wait_for(SpeechEventKind.STARTED)

        assert player.paused
        assert SpeechEventKind.FINISHED not in collector.kinds()

        backend.resume()
        collector.wait_for(SpeechEventKind.FINISHED)
    finally:
        backend.close()
    assert not player.paused


def test_stop_clears_pending_pause(collector):
    engine = GatedTTSEngine()
    player = FakePlayer()
    backend = _backend(collector, engine, player)
    try:
        backend.speak("cancelled")
        assert engine.entered.wait(5.0)
        backend.pause()
        backend.stop()
        engine.gate.set()
        collector.wait_for(SpeechEventKind.CANCELLED)

        handle = backend.speak("next")
        collector.wait_for(SpeechEventKind.FINISHED)
    finally:
        backend.close()
    assert collector.events[-1].handle == handle
    assert not player.paused
