"""
Serialized control context for the narration engine.

Every mutation of engine state runs through a :class:`ControlLoop`, so a
user command can never interleave with a backend event that is being
handled.  Commands are *called* (the caller waits and sees exceptions);
backend events are *posted* (fire-and-forget).
"""

import logging
import queue
import threading
from abc import ABC, abstractmethod
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ControlLoop(ABC):
    """Common interface for serialized executors."""

    @abstractmethod
    def call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run *fn* on the control context, wait, and return its result."""

    @abstractmethod
    def post(self, fn: Callable[..., Any], *args, **kwargs) -> None:
        """Schedule *fn* on the control context without waiting."""

    def close(self) -> None:
        """Stop accepting work and release resources."""


class InlineControlLoop(ControlLoop):
    """
    Runs tasks on the calling thread, one at a time.

    Work posted while a task is running is queued and drained after it,
    in posting order.  A ``call()`` made from inside a running task runs
    immediately (it is already on the control context).
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._pending: deque = deque()
        self._running = False

    def call(self, fn, *args, **kwargs):
        with self._lock:
            if self._running:
                return fn(*args, **kwargs)
            self._running = True
            try:
                return fn(*args, **kwargs)
            finally:
                self._drain()

    def post(self, fn, *args, **kwargs):
        with self._lock:
            if self._running:
                self._pending.append((fn, args, kwargs))
                return
            self._running = True
            try:
                fn(*args, **kwargs)
            except Exception:
                logger.exception("Posted control task failed")
            finally:
                self._drain()

    def _drain(self) -> None:
        try:
            while self._pending:
                fn, args, kwargs = self._pending.popleft()
                try:
                    fn(*args, **kwargs)
                except Exception:
                    logger.exception("Posted control task failed")
        finally:
            self._running = False


_STOP = object()


class ThreadedControlLoop(ControlLoop):
    """
    Dedicated control thread draining a FIFO queue.

    Usage::

        loop = ThreadedControlLoop()
        result = loop.call(engine_method, arg)   # blocks, re-raises errors
        loop.post(handle_event, event)           # returns immediately
        loop.close()
    """

    def __init__(self, name: str = "narration-control"):
        self._queue: "queue.Queue" = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def on_loop_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def call(self, fn, *args, **kwargs):
        if self.on_loop_thread:
            return fn(*args, **kwargs)
        if self._closed:
            raise RuntimeError("Control loop is closed")
        future: Future = Future()
        self._queue.put((fn, args, kwargs, future))
        return future.result()

    def post(self, fn, *args, **kwargs):
        if self._closed:
            logger.debug("Control loop closed, dropping %r", fn)
            return
        self._queue.put((fn, args, kwargs, None))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            fn, args, kwargs, future = item
            if future is not None and not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                if future is None:
                    logger.exception("Posted control task failed")
                else:
                    future.set_exception(e)
            else:
                if future is not None:
                    future.set_result(result)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Finish queued work, then stop the control thread."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        if not self.on_loop_thread:
            self._thread.join(timeout)

    def __repr__(self) -> str:
        return f"ThreadedControlLoop(thread={self._thread.name}, closed={self._closed})"
