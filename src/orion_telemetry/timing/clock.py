"""
Clocks
======

Millisecond clocks used to measure elapsed time inside a screen session.

All session-relative values (TTID, TTFD, frame sample timestamps) are measured
against a Clock rather than wall time, so they never jump when the system
clock is adjusted.

Implementations:
    - MonotonicClock: backed by time.monotonic(), used in production
    - ManualClock: advanced explicitly, used by hosts that replay recorded
      frame traces and by ManualScheduler
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Protocol for millisecond clocks."""

    def now_ms(self) -> float:
        """Current reading in milliseconds from an arbitrary origin."""
        ...


class MonotonicClock:
    """Clock backed by the process monotonic timer."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock()
        clock.advance(16.0)
        assert clock.now_ms() == 16.0
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)

    def now_ms(self) -> float:
        return self._now_ms

    def advance(self, delta_ms: float) -> float:
        """Move the clock forward and return the new reading."""
        if delta_ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms += delta_ms
        return self._now_ms

    def set(self, now_ms: float) -> None:
        """Jump to an absolute reading (never backwards)."""
        if now_ms < self._now_ms:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms = float(now_ms)
