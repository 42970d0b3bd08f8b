"""
Timer Scheduling
================

Cancellable timer abstraction used for manual-TTFD polling and for the
settle delay between finalize and beacon emission.

Every timer is owned by a session; disposing the session cancels its handles,
so no callback outlives the screen it was created for.

Implementations:
    - AsyncioScheduler: wraps loop.call_later on the host event loop
    - ManualScheduler: fires timers when its ManualClock is advanced
    - RepeatingTimer: re-arming helper on top of any Scheduler
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple

from orion_telemetry.timing.clock import ManualClock


logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle returned by Scheduler.call_later."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """Protocol for one-shot timer scheduling in milliseconds."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """
    Scheduler running callbacks on an asyncio event loop.

    Callbacks run on the loop thread, the same thread that delivers frame and
    interaction events, so session state needs no locking.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


class _ManualTimer:
    """Timer entry for ManualScheduler."""

    __slots__ = ("due_ms", "callback", "_cancelled")

    def __init__(self, due_ms: float, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Deterministic scheduler driven by a ManualClock.

    Timers fire in due-time order (insertion order for equal due times) while
    the clock is advanced through them.

    Example:
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        scheduler.call_later(50, poll)
        scheduler.advance(100)   # poll() runs with clock at 50
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self.clock = clock or ManualClock()
        self._queue: List[Tuple[float, int, _ManualTimer]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self.clock.now_ms() + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (timer.due_ms, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())

    def advance(self, delta_ms: float) -> int:
        """
        Advance the clock, firing every timer that falls due on the way.

        Returns:
            Number of callbacks fired.
        """
        return self.advance_to(self.clock.now_ms() + delta_ms)

    def advance_to(self, target_ms: float) -> int:
        """Advance the clock to an absolute reading, firing due timers."""
        fired = 0
        while self._queue and self._queue[0][0] <= target_ms:
            due_ms, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            if due_ms > self.clock.now_ms():
                self.clock.set(due_ms)
            timer.callback()
            fired += 1
        if target_ms > self.clock.now_ms():
            self.clock.set(target_ms)
        return fired


class RepeatingTimer:
    """
    Fixed-interval timer built from one-shot handles.

    The callback returns True to keep running or False to stop. stop()
    cancels the pending handle, so nothing fires after it returns.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval_ms: float,
        callback: Callable[[], bool],
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

        self._scheduler = scheduler
        self._interval_ms = interval_ms
        self._callback = callback
        self._handle: Optional[TimerHandle] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._arm()

    def stop(self) -> None:
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self._interval_ms, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self._running:
            return
        if self._callback():
            if self._running:
                self._arm()
        else:
            self._running = False
