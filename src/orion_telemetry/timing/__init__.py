"""
Timing Module
=============

Clocks and cancellable timers shared by the telemetry engine.

    - Clock / MonotonicClock / ManualClock: millisecond time sources
    - Scheduler / AsyncioScheduler / ManualScheduler: one-shot timers
    - RepeatingTimer: fixed-interval polling with explicit stop
"""

from orion_telemetry.timing.clock import Clock, ManualClock, MonotonicClock
from orion_telemetry.timing.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    RepeatingTimer,
    Scheduler,
    TimerHandle,
)


__all__ = [
    "Clock",
    "ManualClock",
    "MonotonicClock",
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    "ManualScheduler",
    "RepeatingTimer",
]
