"""
Display Timing Module
=====================

TTID/TTFD capture:
    - state_machine.py: DisplayTimingStateMachine and its thresholds

Key Design Decisions:
    - One guarded transition writes TTFD, whichever strategy fires first
    - Manual polling runs on a cancellable timer owned by the machine
"""

from orion_telemetry.display.state_machine import (
    DisplayThresholds,
    DisplayTimingStateMachine,
)

__all__ = [
    "DisplayThresholds",
    "DisplayTimingStateMachine",
]
