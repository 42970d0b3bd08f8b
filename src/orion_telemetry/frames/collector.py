"""
Frame Timing Collector
======================

Per-screen accumulator of rendered-frame durations.

This collector:
    - Receives one callback per rendered frame with the host timestamp
    - Derives duration = timestamp - previous timestamp
    - Classifies each duration as normal, janky or frozen
    - Keeps frozen frames in a separate list for direct reporting
    - On stop, summarises the stream and ranks jank clusters

Classification:
    janky  if duration > jank_threshold_ms   (default 16.67, one 60 Hz frame)
    frozen if duration > frozen_threshold_ms (default 700)
    A frozen frame is also janky.

Design Rules:
    - The first frame only seeds the previous timestamp
    - After stop(), further frames are ignored
    - stop() is idempotent and returns the same summary object
    - Zero frames produce an all-zero summary, not an error
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from orion_telemetry.frames.clusters import detect_jank_clusters, select_top_clusters
from orion_telemetry.frames.sample import (
    FrameClass,
    FrameSample,
    RenderPhase,
    classify_duration,
    normalize_phase,
)
from orion_telemetry.models.frames import FrameSummary, FrozenFrame
from orion_telemetry.timing.clock import Clock, MonotonicClock


logger = logging.getLogger(__name__)


@dataclass
class FrameThresholds:
    """
    Frame classification and clustering limits.

    Loaded from the `frames` configuration section.
    """

    jank_threshold_ms: float = 16.67
    frozen_threshold_ms: float = 700.0
    min_cluster_size: int = 3
    max_clusters: int = 10

    def __post_init__(self) -> None:
        if self.jank_threshold_ms <= 0:
            raise ValueError("jank_threshold_ms must be positive")
        if self.frozen_threshold_ms < self.jank_threshold_ms:
            raise ValueError("frozen_threshold_ms must be >= jank_threshold_ms")
        if self.min_cluster_size < 1:
            raise ValueError("min_cluster_size must be >= 1")
        if self.max_clusters < 1:
            raise ValueError("max_clusters must be >= 1")


class FrameTimingCollector:
    """
    Collects and summarises frame timings for one screen.

    Attributes:
        screen: Screen identifier (for logging)
        thresholds: Classification limits

    Example:
        collector = FrameTimingCollector("HomeScreen")
        collector.start()

        for timestamp in host_frame_timestamps:
            collector.on_frame(timestamp, phase="build")

        summary = collector.stop()
        print(summary.janky_frames, summary.jank_clusters)
    """

    def __init__(
        self,
        screen: str,
        clock: Optional[Clock] = None,
        thresholds: Optional[FrameThresholds] = None,
    ) -> None:
        self.screen = screen
        self.thresholds = thresholds or FrameThresholds()
        self._clock = clock or MonotonicClock()

        self._samples: List[FrameSample] = []
        self._frozen: List[FrozenFrame] = []
        self._janky_count: int = 0

        self._start_ms: Optional[float] = None
        self._last_timestamp: Optional[float] = None
        self._tracking: bool = False
        self._summary: Optional[FrameSummary] = None
        self._out_of_order: int = 0

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def janky_count(self) -> int:
        return self._janky_count

    @property
    def frozen_count(self) -> int:
        return len(self._frozen)

    def start(self) -> None:
        """Begin accepting frames. Ignored once stopped or already started."""
        if self._tracking or self._summary is not None:
            return

        self._start_ms = self._clock.now_ms()
        self._last_timestamp = None
        self._tracking = True
        logger.debug(f"[{self.screen}] Frame tracking started")

    def on_frame(
        self,
        timestamp_ms: float,
        phase: Union[RenderPhase, str] = RenderPhase.UNKNOWN,
    ) -> Optional[FrameSample]:
        """
        Record one rendered frame.

        Args:
            timestamp_ms: Host frame timestamp in ms (monotonic)
            phase: Render phase the frame was produced in

        Returns:
            The recorded sample, or None when no duration could be measured.
        """
        if not self._tracking:
            return None

        previous = self._last_timestamp
        self._last_timestamp = timestamp_ms

        if previous is None:
            return None

        duration = float(timestamp_ms - previous)
        if duration < 0:
            self._out_of_order += 1
            logger.warning(
                f"[{self.screen}] Frame timestamp went backwards: "
                f"got {timestamp_ms:.3f}, previous was {previous:.3f}"
            )
            return None

        elapsed = self._clock.now_ms() - self._start_ms
        frame_start = min(max(0.0, elapsed - duration), max(0.0, elapsed))

        classification = classify_duration(
            duration,
            self.thresholds.jank_threshold_ms,
            self.thresholds.frozen_threshold_ms,
        )

        sample = FrameSample(
            sequence=len(self._samples) + 1,
            timestamp_ms=frame_start,
            duration_ms=duration,
            classification=classification,
            phase=normalize_phase(phase),
        )
        self._samples.append(sample)

        if sample.is_janky:
            self._janky_count += 1

        if classification is FrameClass.FROZEN:
            self._frozen.append(FrozenFrame(
                frame_number=sample.sequence,
                timestamp_ms=round(frame_start, 2),
                duration_ms=round(duration, 2),
                phase=sample.phase,
            ))
            logger.debug(
                f"[{self.screen}] Frozen frame #{sample.sequence}: {duration:.2f}ms"
            )

        return sample

    def stop(self) -> FrameSummary:
        """
        Freeze intake and summarise the stream.

        Returns:
            FrameSummary; the same object on repeated calls.
        """
        if self._summary is not None:
            return self._summary

        self._tracking = False
        self._summary = self._summarise()
        return self._summary

    def _summarise(self) -> FrameSummary:
        total = len(self._samples)
        if total == 0:
            logger.info(f"[{self.screen}] No frames recorded")
            return FrameSummary.empty()

        durations = np.fromiter((s.duration_ms for s in self._samples), dtype=float)
        avg_duration = float(durations.mean())
        worst_duration = float(durations.max())
        janky_pct = self._janky_count / total * 100.0

        all_clusters = detect_jank_clusters(
            self._samples, min_size=self.thresholds.min_cluster_size
        )
        top_clusters = select_top_clusters(all_clusters, limit=self.thresholds.max_clusters)

        logger.info(
            f"[{self.screen}] Frame metrics: total={total}, "
            f"janky={self._janky_count} ({janky_pct:.1f}%), "
            f"frozen={len(self._frozen)}, avg={avg_duration:.2f}ms, "
            f"worst={worst_duration:.2f}ms, clusters={len(all_clusters)} "
            f"(reported {len(top_clusters)})"
        )
        for cluster in top_clusters[:3]:
            logger.debug(
                f"[{self.screen}] Cluster #{cluster.id}: frames "
                f"{cluster.start_frame}-{cluster.end_frame} "
                f"({cluster.start_time_ms:.0f}-{cluster.end_time_ms:.0f}ms), "
                f"worst {cluster.worst_duration_ms:.2f}ms"
            )

        return FrameSummary(
            total_frames=total,
            janky_frames=self._janky_count,
            frozen_frames=len(self._frozen),
            janky_percentage=round(janky_pct, 2),
            avg_duration_ms=round(avg_duration, 2),
            worst_duration_ms=round(worst_duration, 2),
            jank_clusters=top_clusters,
            frozen_frame_list=list(self._frozen),
        )

    def get_metrics(self) -> dict:
        """Get collector metrics for observability."""
        return {
            "screen": self.screen,
            "tracking": self._tracking,
            "samples": len(self._samples),
            "janky": self._janky_count,
            "frozen": len(self._frozen),
            "out_of_order": self._out_of_order,
        }
