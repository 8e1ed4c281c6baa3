# riskcenter/risk_agent/scheduler.py
# Purpose: Cancellable delayed callbacks (real timers and a fake clock)

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Tuple


logger = logging.getLogger(__name__)


class DelayHandle:
    """Returned by call_later(); cancel() is idempotent."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._timer = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> DelayHandle:
        """Run ``callback`` after ``delay_s`` seconds unless cancelled first."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""


def _run(handle: DelayHandle, callback: Callable[[], None]) -> None:
    if handle.cancelled:
        return
    try:
        callback()
    except Exception:
        logger.error("Scheduled callback failed", exc_info=True)


class ThreadingScheduler(Scheduler):
    """Production scheduler: one daemon threading.Timer per call."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> DelayHandle:
        handle = DelayHandle()
        timer = threading.Timer(max(0.0, delay_s), _run, args=(handle, callback))
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def now(self) -> float:
        return time.monotonic()


class ManualScheduler(Scheduler):
    """
    Fake clock for tests. Nothing runs until advance() or run_all().

    Callbacks due at the same time fire in the order they were scheduled.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, DelayHandle, Callable[[], None]]] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> DelayHandle:
        handle = DelayHandle()
        with self._lock:
            heapq.heappush(self._queue, (self._now + max(0.0, delay_s), next(self._counter), handle, callback))
        return handle

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every callback that falls due."""
        target = self._now + seconds
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, _, handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            _run(handle, callback)
        self._now = target

    def run_all(self) -> None:
        """Fire everything still queued, including callbacks scheduled meanwhile."""
        while True:
            with self._lock:
                if not self._queue:
                    return
                due, _, handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            _run(handle, callback)


__all__ = ["DelayHandle", "Scheduler", "ThreadingScheduler", "ManualScheduler"]
