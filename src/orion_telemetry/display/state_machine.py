"""
Display Timing State Machine
============================

TTID and TTFD capture for one screen instance.

States:
    IDLE → TRACKING → CAPTURED → FINALIZED

    begin()     IDLE → TRACKING, starts TTID and TTFD capture
    capture     TRACKING → CAPTURED, exactly once, first source wins
    finalize()  any → FINALIZED, forces TTFD with source 'finalize'

TTID:
    Elapsed time at the first frame rendered after begin(). Stays -1 if no
    frame arrives before finalize.

TTFD Strategies (selected at begin()):
    Manual:
        A RepeatingTimer polls the fully-drawn flag every poll interval.
        Flag seen          -> source 'manual'
        Elapsed > timeout  -> source 'timeout'

    Automatic:
        Every frame first checks the timeout, then the inter-frame duration:
            duration <= stable_frame_max_ms  -> stable run += 1
            duration >  stable_reset_ms      -> stable run = 0
            anything in between              -> run unchanged
        Run reaches required_stable_frames   -> source 'stable_frames'

    Interaction preemption (automatic only):
        First interaction before TTFD -> source 'interaction'

    Finalize fallback:
        finalize() before any source fired -> source 'finalize'

Design Rules:
    - One guarded transition (_capture_ttfd) writes TTFD; nothing else does
    - close() disposes timers and makes every later callback inert
    - Elapsed times come from the session Clock, not from frame timestamps
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from orion_telemetry.models.display import DisplayState, DisplayTiming, TtfdSource
from orion_telemetry.timing.clock import Clock, MonotonicClock
from orion_telemetry.timing.scheduler import RepeatingTimer, Scheduler


logger = logging.getLogger(__name__)


@dataclass
class DisplayThresholds:
    """
    Thresholds for TTFD capture.

    Loaded from the `display` configuration section.
    """

    stable_frame_max_ms: float = 16.0
    stable_reset_ms: float = 32.0
    required_stable_frames: int = 3
    ttfd_timeout_ms: float = 10000.0
    manual_poll_interval_ms: float = 50.0

    def __post_init__(self) -> None:
        if self.stable_frame_max_ms <= 0:
            raise ValueError("stable_frame_max_ms must be positive")
        if self.stable_reset_ms < self.stable_frame_max_ms:
            raise ValueError("stable_reset_ms must be >= stable_frame_max_ms")
        if self.required_stable_frames < 1:
            raise ValueError("required_stable_frames must be >= 1")
        if self.ttfd_timeout_ms <= 0:
            raise ValueError("ttfd_timeout_ms must be positive")
        if self.manual_poll_interval_ms <= 0:
            raise ValueError("manual_poll_interval_ms must be positive")


class DisplayTimingStateMachine:
    """
    Finite-state machine arbitrating the TTFD capture strategies.

    Attributes:
        screen: Screen identifier (for logging)
        manual: Whether TTFD waits for an explicit fully-drawn signal
        thresholds: Capture thresholds

    Example:
        machine = DisplayTimingStateMachine("Feed", clock=clock)
        machine.begin()

        machine.on_frame(t0)        # TTID
        machine.on_frame(t0 + 16)
        ...
        timing = machine.finalize()
        print(timing.ttid, timing.ttfd, timing.ttfd_source)
    """

    def __init__(
        self,
        screen: str,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        thresholds: Optional[DisplayThresholds] = None,
        manual: bool = False,
        fully_drawn: Optional[Callable[[], bool]] = None,
    ) -> None:
        """
        Initialize the state machine.

        Args:
            screen: Screen identifier
            clock: Millisecond clock for elapsed time
            scheduler: Timer source for manual polling. Without one, frame
                callbacks drive the manual poll instead.
            thresholds: Capture thresholds (defaults if None)
            manual: Select manual TTFD mode
            fully_drawn: Probe returning True once the host marked the
                screen fully drawn (manual mode only)
        """
        self.screen = screen
        self.manual = manual
        self.thresholds = thresholds or DisplayThresholds()

        self._clock = clock or MonotonicClock()
        self._scheduler = scheduler
        self._fully_drawn = fully_drawn or (lambda: False)

        self._state = DisplayState.IDLE
        self._disposed = False
        self._begin_ms: float = 0.0

        self._ttid: int = -1
        self._ttfd: int = -1
        self._ttfd_source: Optional[TtfdSource] = None
        self._interaction_ms: Optional[int] = None

        self._stable_run: int = 0
        self._last_frame_ts: Optional[float] = None
        self._poll_timer: Optional[RepeatingTimer] = None

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def ttfd_captured(self) -> bool:
        return self._ttfd_source is not None

    @property
    def timing(self) -> DisplayTiming:
        """Immutable snapshot of the current values."""
        return DisplayTiming(
            ttid=self._ttid,
            ttfd=self._ttfd,
            ttfd_source=self._ttfd_source,
            interacted=self._interaction_ms is not None,
            interaction_time_ms=self._interaction_ms,
        )

    def elapsed_ms(self) -> float:
        """Milliseconds since begin() (0 before begin)."""
        if self._state is DisplayState.IDLE:
            return 0.0
        return self._clock.now_ms() - self._begin_ms

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def begin(self) -> None:
        """Start TTID and TTFD capture."""
        if self._state is not DisplayState.IDLE or self._disposed:
            return

        self._begin_ms = self._clock.now_ms()
        self._state = DisplayState.TRACKING

        if self.manual:
            logger.info(f"[{self.screen}] Waiting for manual TTFD signal")
            if self._scheduler is not None:
                self._poll_timer = RepeatingTimer(
                    self._scheduler,
                    self.thresholds.manual_poll_interval_ms,
                    self._poll_manual,
                )
                self._poll_timer.start()

    def close(self) -> None:
        """
        Dispose without finalizing.

        Pending timers are cancelled and frame, interaction and poll
        callbacks become no-ops. finalize() still works afterwards.
        """
        if self._disposed:
            return
        self._disposed = True
        self._stop_polling()

    def finalize(self) -> DisplayTiming:
        """
        Force-capture missing values and return the final timing.

        TTFD falls back to the elapsed time with source 'finalize'. TTID is
        never forced and stays -1 when no frame was rendered.
        """
        if self._state is DisplayState.FINALIZED:
            return self.timing

        if self._state is not DisplayState.IDLE and not self.ttfd_captured:
            self._capture_ttfd(TtfdSource.FINALIZE, self.elapsed_ms())

        self.close()
        self._state = DisplayState.FINALIZED
        return self.timing

    # -------------------------------------------------------------------------
    # Inbound signals
    # -------------------------------------------------------------------------

    def on_frame(self, timestamp_ms: float) -> None:
        """Handle a frame-rendered signal from the host scheduler."""
        if self._disposed or self._state not in (DisplayState.TRACKING, DisplayState.CAPTURED):
            return

        if self._ttid < 0:
            self._ttid = int(self.elapsed_ms())
            logger.info(f"[{self.screen}] TTID: {self._ttid} ms")

        if self.ttfd_captured:
            return

        if self.manual:
            if self._poll_timer is None:
                self._poll_manual()
            return

        self._on_automatic_frame(timestamp_ms)

    def on_user_interaction(self) -> None:
        """
        Handle the user's first interaction with the screen.

        Ignored once TTFD is captured. In automatic mode the interaction
        captures TTFD.
        """
        if self._disposed or self._state is not DisplayState.TRACKING:
            return
        if self.ttfd_captured or self._interaction_ms is not None:
            return

        elapsed = self.elapsed_ms()
        self._interaction_ms = int(elapsed)
        logger.info(f"[{self.screen}] User interaction at {self._interaction_ms} ms")

        if not self.manual:
            self._capture_ttfd(TtfdSource.INTERACTION, elapsed)

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _on_automatic_frame(self, timestamp_ms: float) -> None:
        th = self.thresholds
        elapsed = self.elapsed_ms()

        if elapsed > th.ttfd_timeout_ms:
            self._capture_ttfd(TtfdSource.TIMEOUT, elapsed)
            return

        if self._last_frame_ts is not None:
            duration = timestamp_ms - self._last_frame_ts

            if duration <= th.stable_frame_max_ms:
                self._stable_run += 1
                if self._stable_run >= th.required_stable_frames:
                    self._capture_ttfd(TtfdSource.STABLE_FRAMES, elapsed)
                    return
            elif duration > th.stable_reset_ms:
                self._stable_run = 0

        self._last_frame_ts = timestamp_ms

    def _poll_manual(self) -> bool:
        """One manual-mode poll. Returns True while polling should continue."""
        if self._disposed or self.ttfd_captured:
            return False

        elapsed = self.elapsed_ms()

        if self._fully_drawn():
            self._capture_ttfd(TtfdSource.MANUAL, elapsed)
            return False

        if elapsed > self.thresholds.ttfd_timeout_ms:
            self._capture_ttfd(TtfdSource.TIMEOUT, elapsed)
            return False

        return True

    def _capture_ttfd(self, source: TtfdSource, elapsed_ms: float) -> bool:
        """
        The single TTFD write. First caller wins.

        Returns:
            True if this call captured TTFD.
        """
        if self.ttfd_captured:
            return False

        self._ttfd = int(elapsed_ms)
        self._ttfd_source = source
        if self._state is DisplayState.TRACKING:
            self._state = DisplayState.CAPTURED

        self._stop_polling()

        if source is TtfdSource.TIMEOUT:
            logger.warning(f"[{self.screen}] TTFD timeout: {self._ttfd} ms")
        else:
            logger.info(f"[{self.screen}] TTFD ({source.value}): {self._ttfd} ms")
        return True

    def _stop_polling(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None
