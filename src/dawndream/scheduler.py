"""Clocks and timers injected into the controllers.

The controllers never sleep or read the wall clock directly. Production code
uses :class:`SystemClock` with :class:`ThreadScheduler`; tests drive a
:class:`ManualClock` through :class:`ManualScheduler` so that half an hour of
session time runs instantly.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class SystemClock:
    def now(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    def __init__(self, now_ms: int = 0) -> None:
        self._now = int(now_ms)

    def now(self) -> int:
        return self._now

    def set(self, now_ms: int) -> None:
        self._now = int(now_ms)

    def advance(self, ms: int) -> None:
        self._now += int(ms)


class TimerHandle:
    """Cancellation token returned by every scheduler call."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()


class _ThreadTimerHandle(TimerHandle):
    def __init__(self) -> None:
        super().__init__()
        self.timer: Optional[threading.Timer] = None

    def cancel(self) -> None:
        super().cancel()
        if self.timer is not None:
            self.timer.cancel()


class ThreadScheduler:
    """Runs timers on daemon threads."""

    def call_later(self, delay_ms: int, callback: Callback) -> TimerHandle:
        handle = _ThreadTimerHandle()

        def _fire() -> None:
            if handle.cancelled:
                return
            _run(callback)

        handle.timer = threading.Timer(max(0, delay_ms) / 1000, _fire)
        handle.timer.daemon = True
        handle.timer.start()
        return handle

    def call_every(self, interval_ms: int, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        interval = max(1, interval_ms) / 1000

        def _loop() -> None:
            # Event.wait returns True once cancelled.
            while not handle._cancelled.wait(interval):
                _run(callback)

        thread = threading.Thread(target=_loop, daemon=True, name="dawndream-timer")
        thread.start()
        return handle


def _run(callback: Callback) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Timer callback failed")


class ManualScheduler:
    """Deterministic scheduler for tests.

    Timers due at the same instant run in the order they were scheduled.
    """

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self._queue: List[Tuple[int, int, TimerHandle, Callback, Optional[int]]] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: int, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        self._push(self.clock.now() + max(0, delay_ms), handle, callback, None)
        return handle

    def call_every(self, interval_ms: int, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        interval = max(1, interval_ms)
        self._push(self.clock.now() + interval, handle, callback, interval)
        return handle

    def _push(
        self,
        due: int,
        handle: TimerHandle,
        callback: Callback,
        interval: Optional[int],
    ) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, interval))

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, ms: int) -> None:
        """Move the clock forward by ``ms``, firing every timer that falls due."""
        target = self.clock.now() + int(ms)
        while self._queue and self._queue[0][0] <= target:
            due, _seq, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.clock.set(due)
            callback()
            if interval is not None and not handle.cancelled:
                self._push(due + interval, handle, callback, interval)
        self.clock.set(target)
