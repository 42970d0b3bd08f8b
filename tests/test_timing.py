"""
Timing Tests
============

Tests for the manual clock, manual scheduler and repeating timer.
"""

import asyncio

import pytest

from orion_telemetry.timing import AsyncioScheduler, ManualClock, ManualScheduler, RepeatingTimer


class TestManualClock:
    def test_advance_and_set(self):
        clock = ManualClock(start_ms=10.0)
        assert clock.advance(5.0) == 15.0
        clock.set(40.0)
        assert clock.now_ms() == 40.0

    def test_never_backwards(self):
        clock = ManualClock(start_ms=10.0)
        with pytest.raises(ValueError):
            clock.advance(-1.0)
        with pytest.raises(ValueError):
            clock.set(5.0)


class TestManualScheduler:
    """Tests for deterministic timer firing."""

    def test_fires_in_due_order_with_clock_at_due_time(self, scheduler, clock):
        seen = []
        scheduler.call_later(30, lambda: seen.append(("b", clock.now_ms())))
        scheduler.call_later(10, lambda: seen.append(("a", clock.now_ms())))

        fired = scheduler.advance(50)

        assert fired == 2
        assert seen == [("a", 10.0), ("b", 30.0)]
        assert clock.now_ms() == 50.0

    def test_cancelled_timer_skipped(self, scheduler):
        seen = []
        handle = scheduler.call_later(10, lambda: seen.append(1))
        handle.cancel()

        assert scheduler.pending == 0
        assert scheduler.advance(20) == 0
        assert seen == []

    def test_timer_scheduled_during_advance(self, scheduler):
        seen = []

        def first():
            seen.append("first")
            scheduler.call_later(5, lambda: seen.append("second"))

        scheduler.call_later(10, first)
        scheduler.advance(20)
        assert seen == ["first", "second"]


class TestRepeatingTimer:
    """Tests for the re-arming timer."""

    def test_repeats_until_callback_returns_false(self, scheduler):
        ticks = []

        def tick():
            ticks.append(scheduler.clock.now_ms())
            return len(ticks) < 3

        timer = RepeatingTimer(scheduler, 50, tick)
        timer.start()
        scheduler.advance(1000)

        assert ticks == [50.0, 100.0, 150.0]
        assert not timer.running

    def test_stop_cancels_pending(self, scheduler):
        timer = RepeatingTimer(scheduler, 50, lambda: True)
        timer.start()
        scheduler.advance(120)
        timer.stop()

        assert scheduler.pending == 0
        assert scheduler.advance(500) == 0

    def test_invalid_interval(self, scheduler):
        with pytest.raises(ValueError):
            RepeatingTimer(scheduler, 0, lambda: True)


class TestAsyncioScheduler:
    def test_call_later_runs_on_loop(self):
        async def run():
            scheduler = AsyncioScheduler()
            done = asyncio.Event()
            scheduler.call_later(5, done.set)
            await asyncio.wait_for(done.wait(), timeout=1.0)
            return done.is_set()

        assert asyncio.run(run())
