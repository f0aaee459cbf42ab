"""
Timer scheduling for the playback adapters.

Adapters never sleep or start threads directly; they ask a ``Scheduler`` for
cancellable callbacks so frame loops, time polling and retry backoff can be
driven deterministically in tests.
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellable reference to a scheduled callback."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler:
    """Base scheduler interface."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """
    Runs callbacks in due-time order on one long-lived daemon thread, so a
    60 Hz frame loop reuses the same thread instead of starting one per frame.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue: List[Tuple[float, int, TimerHandle, Callable[..., Any], Tuple[Any, ...]]] = []
        self._seq = itertools.count()
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def thread(self) -> Optional[threading.Thread]:
        return self._thread

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle()
        with self._condition:
            if self._closed:
                raise RuntimeError("Scheduler is closed")
            due = self._clock() + max(0.0, delay)
            heapq.heappush(self._queue, (due, next(self._seq), handle, callback, args))
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name="captionkit-scheduler", daemon=True)
                self._thread.start()
            self._condition.notify()
        return handle

    def close(self) -> None:
        """Stop the worker thread; callbacks still queued are dropped."""
        with self._condition:
            self._closed = True
            self._queue.clear()
            self._condition.notify()

    def _next_due(self):
        with self._condition:
            while not self._closed:
                if not self._queue:
                    self._condition.wait()
                    continue
                wait = self._queue[0][0] - self._clock()
                if wait <= 0:
                    return heapq.heappop(self._queue)
                self._condition.wait(wait)
            return None

    def _run(self) -> None:
        while True:
            entry = self._next_due()
            if entry is None:
                return
            _, _, handle, callback, args = entry
            if handle.cancelled:
                continue
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Scheduled callback {getattr(callback, '__name__', callback)!r} failed")
