"""
Frame Sample
============

Internal per-frame record kept by the FrameTimingCollector.

Design Rules:
    - Immutable once created
    - Never leaves the collector except as a cluster member or a count
    - Timestamp is the frame START relative to the session clock
"""

from dataclasses import dataclass
from enum import Enum


class FrameClass(str, Enum):
    """Classification of a single frame duration."""

    NORMAL = "normal"
    JANKY = "janky"
    FROZEN = "frozen"


class RenderPhase(str, Enum):
    """Scheduler phases a host may tag frames with."""

    IDLE = "idle"
    ANIMATION = "animation"
    MICROTASKS = "microtasks"
    BUILD = "build"
    POST_FRAME = "postFrame"
    UNKNOWN = "unknown"


def normalize_phase(phase) -> str:
    """Wire value of a phase tag; RenderPhase members and free strings are accepted."""
    if isinstance(phase, RenderPhase):
        return phase.value
    return str(phase) if phase else RenderPhase.UNKNOWN.value


@dataclass(frozen=True, slots=True)
class FrameSample:
    """
    One measured frame.

    Attributes:
        sequence: 1-based position in the session's sample stream
        timestamp_ms: Frame start, ms since collector start
        duration_ms: Time since the previous frame callback
        classification: normal, janky or frozen
        phase: Render phase reported by the host
    """

    sequence: int
    timestamp_ms: float
    duration_ms: float
    classification: FrameClass
    phase: str

    @property
    def is_janky(self) -> bool:
        """Frozen frames count as janky too."""
        return self.classification is not FrameClass.NORMAL

    @property
    def is_frozen(self) -> bool:
        return self.classification is FrameClass.FROZEN

    def __repr__(self) -> str:
        return (
            f"FrameSample(#{self.sequence}, t={self.timestamp_ms:.1f}ms, "
            f"dur={self.duration_ms:.2f}ms, {self.classification.value})"
        )


def classify_duration(
    duration_ms: float,
    jank_threshold_ms: float,
    frozen_threshold_ms: float,
) -> FrameClass:
    """Classify a frame duration against the janky/frozen thresholds."""
    if duration_ms > frozen_threshold_ms:
        return FrameClass.FROZEN
    if duration_ms > jank_threshold_ms:
        return FrameClass.JANKY
    return FrameClass.NORMAL
