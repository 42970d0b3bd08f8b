"""
Display Timing Models
=====================

TTID/TTFD results produced by the DisplayTimingStateMachine.

TTFD Sources:
    stable_frames: required run of stable frames observed
    interaction:   user interacted before the screen stabilised
    manual:        host signalled fully drawn
    timeout:       elapsed time passed the TTFD timeout
    finalize:      screen left before any other source fired
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from orion_telemetry.models.base import BeaconModel


class TtfdSource(str, Enum):
    """How the TTFD value was obtained."""

    STABLE_FRAMES = "stable_frames"
    INTERACTION = "interaction"
    MANUAL = "manual"
    TIMEOUT = "timeout"
    FINALIZE = "finalize"


class DisplayState(str, Enum):
    """
    Lifecycle states of a DisplayTimingStateMachine.

    IDLE → TRACKING → CAPTURED → FINALIZED
    TRACKING may go straight to FINALIZED when no TTFD source fired.
    """

    IDLE = "IDLE"
    TRACKING = "TRACKING"
    CAPTURED = "CAPTURED"
    FINALIZED = "FINALIZED"


class DisplayTiming(BeaconModel):
    """
    Immutable TTID/TTFD snapshot.

    Attributes:
        ttid: Time to initial display in ms (-1 if never captured)
        ttfd: Time to full display in ms (-1 if never captured)
        ttfd_source: Which strategy captured TTFD
        interacted: Whether the user interacted while tracking
        interaction_time_ms: Elapsed time of the first interaction
    """

    ttid: int = Field(default=-1, ge=-1)
    ttfd: int = Field(default=-1, ge=-1)
    ttfd_source: Optional[TtfdSource] = Field(default=None)
    interacted: bool = Field(default=False)
    interaction_time_ms: Optional[int] = Field(default=None, ge=0)

    @property
    def ttid_captured(self) -> bool:
        return self.ttid >= 0

    @property
    def ttfd_captured(self) -> bool:
        return self.ttfd >= 0
