"""
Screen Session
==============

One tracked visit to one screen.

A ScreenSession composes the two per-screen engines and turns their results
into a beacon:

    FrameTimingCollector        frame durations, jank clusters
    DisplayTimingStateMachine   TTID / TTFD

Lifecycle:
    begin()     start both engines
    on_frame()  feed both engines
    close()     freeze display timing (TTFD fallback applied, timers
                cancelled); the collector keeps sampling
    finalize()  stop the collector and assemble the Beacon
"""

import logging
import time
from typing import Callable, List, Optional, Union

from orion_telemetry.display.state_machine import (
    DisplayThresholds,
    DisplayTimingStateMachine,
)
from orion_telemetry.frames.collector import FrameThresholds, FrameTimingCollector
from orion_telemetry.frames.sample import RenderPhase
from orion_telemetry.models.beacon import Beacon
from orion_telemetry.models.display import DisplayTiming
from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.timing.clock import Clock, MonotonicClock
from orion_telemetry.timing.scheduler import Scheduler


logger = logging.getLogger(__name__)


class ScreenSession:
    """
    Collector + state machine for a single screen visit.

    Attributes:
        screen: Screen identifier
        manual: Whether TTFD waits for a fully-drawn signal
        collector: Frame timing collector
        display: TTID/TTFD state machine
        beacon: The assembled beacon, once finalized
    """

    def __init__(
        self,
        screen: str,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        frame_thresholds: Optional[FrameThresholds] = None,
        display_thresholds: Optional[DisplayThresholds] = None,
        manual: bool = False,
        fully_drawn: Optional[Callable[[], bool]] = None,
    ) -> None:
        if not screen:
            raise ValueError("screen must be a non-empty string")

        self.screen = screen
        self.manual = manual

        self._clock = clock or MonotonicClock()
        self.collector = FrameTimingCollector(
            screen, clock=self._clock, thresholds=frame_thresholds
        )
        self.display = DisplayTimingStateMachine(
            screen,
            clock=self._clock,
            scheduler=scheduler,
            thresholds=display_thresholds,
            manual=manual,
            fully_drawn=fully_drawn,
        )

        self.started_at: Optional[float] = None
        self.started_ms: Optional[float] = None
        self.beacon: Optional[Beacon] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finalized(self) -> bool:
        return self.beacon is not None

    def begin(self) -> None:
        if self.started_at is not None:
            return

        self.started_at = time.time()
        self.started_ms = self._clock.now_ms()
        self.collector.start()
        self.display.begin()

        mode = "manual" if self.manual else "automatic"
        logger.info(f"[{self.screen}] Tracking started ({mode} TTFD)")

    def on_frame(self, timestamp_ms: float, phase: Union[RenderPhase, str] = RenderPhase.UNKNOWN) -> None:
        self.collector.on_frame(timestamp_ms, phase)
        self.display.on_frame(timestamp_ms)

    def on_user_interaction(self) -> None:
        self.display.on_user_interaction()

    def close(self) -> DisplayTiming:
        """Freeze TTID/TTFD. Frames still reach the collector until finalize()."""
        self._closed = True
        return self.display.finalize()

    def finalize(self, network_requests: Optional[List[NetworkDescriptor]] = None) -> Beacon:
        """
        Stop sampling and build the beacon. Idempotent.

        Args:
            network_requests: Descriptors drained from the correlator
        """
        if self.beacon is not None:
            return self.beacon

        timing = self.close()
        summary = self.collector.stop()
        requests = list(network_requests or [])

        self.beacon = Beacon.assemble(
            screen=self.screen,
            timing=timing,
            frame_summary=summary,
            network_requests=requests,
            started_at=self.started_at,
        )

        source = timing.ttfd_source.value if timing.ttfd_source else None
        logger.info(
            f"[{self.screen}] Beacon ready: ttid={timing.ttid}ms, "
            f"ttfd={timing.ttfd}ms ({source}), "
            f"janky={summary.janky_frames}/{summary.total_frames}, "
            f"frozen={summary.frozen_frames}, network={len(requests)}"
        )
        return self.beacon

    def get_metrics(self) -> dict:
        timing = self.display.timing
        return {
            "screen": self.screen,
            "manual": self.manual,
            "state": self.display.state.value,
            "ttid": timing.ttid,
            "ttfd": timing.ttfd,
            "frames": self.collector.sample_count,
            "closed": self._closed,
        }
