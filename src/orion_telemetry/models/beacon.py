"""
Screen Beacon
=============

The finalized performance report for one screen visit.

Output Contract:
    {
        "screen": "HomeScreen",
        "ttid": 42,
        "ttfd": 318,
        "ttfdSource": "stable_frames",
        "interacted": true,
        "interactionTimeMs": 1204,
        "startedAt": 1770500938.284,
        "frameSummary": {...},
        "networkRequests": [...]
    }

Design Rules:
    - Exactly one beacon per finalized ScreenSession
    - Built once, immutable, handed to the transport collaborator
    - None-valued fields are omitted from the payload
"""

from typing import List, Optional

from pydantic import Field

from orion_telemetry.models.base import BeaconModel
from orion_telemetry.models.display import DisplayTiming, TtfdSource
from orion_telemetry.models.frames import FrameSummary
from orion_telemetry.models.network import NetworkDescriptor


class Beacon(BeaconModel):
    """
    Complete per-screen report handed to the transport.

    Attributes:
        screen: Screen identifier
        ttid: Time to initial display (ms, -1 if never captured)
        ttfd: Time to full display (ms, -1 if never captured)
        ttfd_source: Strategy that captured TTFD
        interacted: Whether the user interacted during tracking
        interaction_time_ms: Elapsed time of the first interaction
        started_at: UNIX timestamp when tracking began
        frame_summary: Frame statistics and jank clusters
        network_requests: Requests correlated with the screen
    """

    screen: str = Field(..., min_length=1)
    ttid: int = Field(default=-1, ge=-1)
    ttfd: int = Field(default=-1, ge=-1)
    ttfd_source: Optional[TtfdSource] = Field(default=None)
    interacted: bool = Field(default=False)
    interaction_time_ms: Optional[int] = Field(default=None, ge=0)
    started_at: Optional[float] = Field(default=None, gt=0)
    frame_summary: FrameSummary = Field(default_factory=FrameSummary.empty)
    network_requests: List[NetworkDescriptor] = Field(default_factory=list)

    @classmethod
    def assemble(
        cls,
        screen: str,
        timing: DisplayTiming,
        frame_summary: FrameSummary,
        network_requests: List[NetworkDescriptor],
        started_at: Optional[float] = None,
    ) -> "Beacon":
        """Build a beacon from the three per-screen results."""
        return cls(
            screen=screen,
            ttid=timing.ttid,
            ttfd=timing.ttfd,
            ttfd_source=timing.ttfd_source,
            interacted=timing.interacted,
            interaction_time_ms=timing.interaction_time_ms,
            started_at=started_at,
            frame_summary=frame_summary,
            network_requests=list(network_requests),
        )

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["frameSummary"] = self.frame_summary.to_payload()
        return payload
