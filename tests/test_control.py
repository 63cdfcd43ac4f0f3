"""Tests for the serialized control loops."""

import threading

import pytest

from conftest import FakeSpeechBackend
from reader_core.document import MemoryDocumentSource
from readaloud.playback.control import InlineControlLoop, ThreadedControlLoop
from readaloud.playback.engine import NarrationEngine
from readaloud.playback.models import PlaybackState


# --- Inline loop ---

def test_inline_call_returns_result():
    loop = InlineControlLoop()
    assert loop.call(lambda a, b: a + b, 2, 3) == 5


def test_inline_call_propagates_exceptions():
    loop = InlineControlLoop()

    def boom():
        raise KeyError("x")

    with pytest.raises(KeyError):
        loop.call(boom)
    # Loop is usable afterwards
    assert loop.call(lambda: "ok") == "ok"


def test_inline_post_during_call_runs_after():
    """Work posted from inside a task runs once that task is done."""
    loop = InlineControlLoop()
    order = []

    def task():
        loop.post(order.append, "posted")
        order.append("task")

    loop.call(task)
    assert order == ["task", "posted"]


def test_inline_nested_call_runs_immediately():
    loop = InlineControlLoop()
    order = []

    def outer():
        loop.call(order.append, "inner")
        order.append("outer")

    loop.call(outer)
    assert order == ["inner", "outer"]


def test_inline_post_failure_is_logged(caplog):
    loop = InlineControlLoop()

    def boom():
        raise RuntimeError("posted failure")

    loop.post(boom)
    assert "Posted control task failed" in caplog.text
    assert loop.call(lambda: 1) == 1


# --- Threaded loop ---

def test_threaded_call_runs_on_loop_thread():
    loop = ThreadedControlLoop(name="test-control")
    try:
        assert loop.call(lambda: threading.current_thread().name) == "test-control"
    finally:
        loop.close()


def test_threaded_call_propagates_exceptions():
    loop = ThreadedControlLoop()
    try:
        with pytest.raises(ValueError, match="bad value"):
            loop.call(int, "bad value")
    finally:
        loop.close()


def test_threaded_post_preserves_order():
    loop = ThreadedControlLoop()
    seen = []
    try:
        for i in range(50):
            loop.post(seen.append, i)
        loop.call(lambda: None)
        assert seen == list(range(50))
    finally:
        loop.close()


def test_threaded_call_from_loop_thread_is_inline():
    loop = ThreadedControlLoop()
    try:
        assert loop.call(lambda: loop.call(lambda: "nested")) == "nested"
    finally:
        loop.close()


def test_threaded_closed_loop():
    loop = ThreadedControlLoop()
    loop.close()
    with pytest.raises(RuntimeError):
        loop.call(lambda: None)
    loop.post(lambda: None)
    loop.close()


# --- Engine on the threaded loop ---

def test_engine_events_from_backend_thread():
    """Events fired from another thread are applied on the control thread."""
    backend = FakeSpeechBackend()
    engine = NarrationEngine(backend, control=ThreadedControlLoop())
    try:
        engine.open_document(MemoryDocumentSource(["A", "", "C"]))
        engine.start(0)

        worker = threading.Thread(target=backend.finish)
        worker.start()
        worker.join()
        # A call is queued behind the posted event
        engine.control.call(lambda: None)

        assert backend.texts == ["A", "C"]
        assert engine.current_page_index == 2

        engine.stop()
        backend.finish()
        engine.control.call(lambda: None)
        assert engine.state is PlaybackState.IDLE
        assert engine.current_page_index == 2
    finally:
        engine.shutdown()
