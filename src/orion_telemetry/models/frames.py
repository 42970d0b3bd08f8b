"""
Frame Metrics Models
====================

Summary models produced by the FrameTimingCollector when a screen stops.

Beacon Shape:
    {
        "totalFrames": 240,
        "jankyFrames": 12,
        "frozenFrames": 1,
        "jankyPercentage": 5.0,
        "avgDurationMs": 17.42,
        "worstDurationMs": 812.0,
        "jankClusters": [
            {
                "id": 1,
                "startFrame": 4,
                "endFrame": 7,
                "startTimeMs": 48.0,
                "endTimeMs": 130.0,
                "avgDurationMs": 20.5,
                "worstDurationMs": 24.0,
                "phase": "build"
            }
        ],
        "frozenFrameList": [
            {"frameNumber": 90, "timestampMs": 1502.0, "durationMs": 812.0, "phase": "build"}
        ]
    }

The frozen-frame count and the frozen-frame list use different keys so the
two never collide. The list is omitted when empty.
"""

from typing import List

from pydantic import Field

from orion_telemetry.models.base import BeaconModel


class JankCluster(BeaconModel):
    """
    A maximal run of consecutive janky frames.

    Attributes:
        id: 1-based id assigned in detection order (not rank order)
        start_frame: Sequence number of the first member frame
        end_frame: Sequence number of the last member frame
        start_time_ms: Start of the first member, ms from screen start
        end_time_ms: End of the last member, ms from screen start
        avg_duration_ms: Mean duration of member frames
        worst_duration_ms: Longest member frame
        phase: Most frequent render phase among members
        severity: Ranking score, never serialised
    """

    id: int = Field(..., ge=1)
    start_frame: int = Field(..., ge=1)
    end_frame: int = Field(..., ge=1)
    start_time_ms: float = Field(..., ge=0.0)
    end_time_ms: float = Field(..., ge=0.0)
    avg_duration_ms: float = Field(..., ge=0.0)
    worst_duration_ms: float = Field(..., ge=0.0)
    phase: str = Field(default="unknown")
    severity: float = Field(default=0.0, exclude=True)

    @property
    def frame_count(self) -> int:
        """Number of member frames."""
        return self.end_frame - self.start_frame + 1


class FrozenFrame(BeaconModel):
    """
    A single frame above the frozen threshold.

    Attributes:
        frame_number: Sequence number of the frame
        timestamp_ms: Frame start, ms from screen start
        duration_ms: Frame duration
        phase: Render phase reported by the host
    """

    frame_number: int = Field(..., ge=1)
    timestamp_ms: float = Field(..., ge=0.0)
    duration_ms: float = Field(..., ge=0.0)
    phase: str = Field(default="unknown")


class FrameSummary(BeaconModel):
    """
    Frame statistics for one screen visit.

    Averages, worst duration and janky percentage cover the whole stream,
    not only clustered frames.
    """

    total_frames: int = Field(default=0, ge=0)
    janky_frames: int = Field(default=0, ge=0)
    frozen_frames: int = Field(default=0, ge=0)
    janky_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    avg_duration_ms: float = Field(default=0.0, ge=0.0)
    worst_duration_ms: float = Field(default=0.0, ge=0.0)
    jank_clusters: List[JankCluster] = Field(default_factory=list)
    frozen_frame_list: List[FrozenFrame] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "FrameSummary":
        """Summary for a screen that rendered no measurable frames."""
        return cls()

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if not self.frozen_frame_list:
            payload.pop("frozenFrameList", None)
        return payload
