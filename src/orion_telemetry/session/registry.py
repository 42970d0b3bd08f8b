"""
Session Registry
================

Owns every live ScreenSession and the navigation history.

The registry is an explicit object held by the composition root (service
lifespan, script or test); there is no process-wide singleton.

Responsibilities:
    - screen id → live ScreenSession (one per id)
    - history stack for "resume previous screen" on back navigation
    - manual-TTFD declarations and fully-drawn flags
    - routing of frame, interaction and network events
    - beacon emission, immediately or after the settle delay

Finalize Sequence:
    1. Remove the session and pop history if it is on top
    2. Clear the fully-drawn flag
    3. Point the correlator at the new history top
    4. Drain the screen's network buffer
    5. Close the session (TTID/TTFD frozen, timers cancelled)
    6. Emit the beacon now, or after settle_delay_ms while the collector
       keeps sampling (a duplicate start always emits at once)

Threading:
    All methods are expected on one thread (the event loop thread). Only the
    NetworkCorrelator is shared with other threads.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Union

from orion_telemetry.display.state_machine import DisplayThresholds
from orion_telemetry.frames.collector import FrameThresholds
from orion_telemetry.frames.sample import RenderPhase
from orion_telemetry.models.beacon import Beacon
from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.network.correlator import NetworkCorrelator
from orion_telemetry.session.screen import ScreenSession
from orion_telemetry.timing.clock import Clock, MonotonicClock
from orion_telemetry.timing.scheduler import Scheduler, TimerHandle
from orion_telemetry.transport.base import BeaconTransport


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _SettlingSession:
    """A finalized session waiting out its settle delay."""

    session: ScreenSession
    network: List[NetworkDescriptor]
    handle: Optional[TimerHandle] = None


class SessionRegistry:
    """
    Registry of screen sessions.

    Attributes:
        transport: Destination for finalized beacons
        correlator: Per-screen network buffers
        settle_delay_ms: Delay between finalize and emission

    Example:
        registry = SessionRegistry(transport=LoggingTransport())

        registry.start_tracking("Home")
        registry.on_frame_rendered(16.0, "build")
        ...
        registry.start_tracking("Details")
        registry.finalize_screen("Details")
        registry.resume_previous_screen()     # back on "Home"
    """

    def __init__(
        self,
        transport: BeaconTransport,
        correlator: Optional[NetworkCorrelator] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        frame_thresholds: Optional[FrameThresholds] = None,
        display_thresholds: Optional[DisplayThresholds] = None,
        settle_delay_ms: float = 100.0,
    ) -> None:
        """
        Initialize the registry.

        Args:
            transport: Beacon destination
            correlator: Network correlator (a default one if None)
            clock: Clock shared by all sessions
            scheduler: Timer source for manual polling and settle delays.
                Without one, beacons are emitted immediately.
            frame_thresholds: Collector limits for new sessions
            display_thresholds: State machine limits for new sessions
            settle_delay_ms: Delay before emission (0 = immediate)
        """
        if settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must be >= 0")

        self.transport = transport
        self.correlator = correlator or NetworkCorrelator()
        self.settle_delay_ms = settle_delay_ms

        self._clock = clock or MonotonicClock()
        self._scheduler = scheduler
        self._frame_thresholds = frame_thresholds or FrameThresholds()
        self._display_thresholds = display_thresholds or DisplayThresholds()

        self._sessions: Dict[str, ScreenSession] = {}
        self._history: List[str] = []
        self._manual_screens: Set[str] = set()
        self._fully_drawn: Set[str] = set()
        self._settling: List[_SettlingSession] = []

        # Metrics
        self._sessions_started: int = 0
        self._beacons_emitted: int = 0
        self._transport_failures: int = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_screen(self) -> Optional[str]:
        """Top of the history stack."""
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[str]:
        return list(self._history)

    @property
    def active_screens(self) -> List[str]:
        return list(self._sessions)

    @property
    def settling_count(self) -> int:
        return len(self._settling)

    def has_tracked(self, screen: str) -> bool:
        """True while a live session exists for the screen."""
        return screen in self._sessions

    def get_session(self, screen: str) -> Optional[ScreenSession]:
        return self._sessions.get(screen)

    def get_last_tracked_screen(self) -> Optional[str]:
        """Second entry from the top of the history, without changing it."""
        if len(self._history) >= 2:
            return self._history[-2]
        logger.debug("No previous screen in history")
        return None

    def is_manual(self, screen: str) -> bool:
        return screen in self._manual_screens

    # -------------------------------------------------------------------------
    # Manual TTFD
    # -------------------------------------------------------------------------

    def register_manual_screen(self, screen: str) -> None:
        """Declare that the screen reports its own fully-drawn moment."""
        self._manual_screens.add(screen)
        logger.debug(f"[{screen}] Registered for manual TTFD")

    def unregister_manual_screen(self, screen: str) -> None:
        self._manual_screens.discard(screen)

    def mark_fully_drawn(self, screen: str) -> None:
        """Signal that a manual screen finished drawing its content."""
        self._fully_drawn.add(screen)
        logger.info(f"[{screen}] Marked fully drawn")

    def is_fully_drawn(self, screen: str) -> bool:
        return screen in self._fully_drawn

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start_tracking(self, screen: str, manual: Optional[bool] = None) -> ScreenSession:
        """
        Start tracking a screen.

        A screen that is already tracked is finalized first, so its beacon
        is emitted before the new session begins.

        Args:
            screen: Screen identifier
            manual: Force manual (True) or automatic (False) TTFD for this
                start. None uses the register_manual_screen declaration.

        Returns:
            The new session.
        """
        if not screen:
            raise ValueError("screen must be a non-empty string")

        if screen in self._sessions:
            logger.warning(f"[{screen}] Already tracking, finalizing previous session")
            self.finalize_screen(screen, immediate=True)

        if not self._history or self._history[-1] != screen:
            self._history.append(screen)

        self.correlator.set_current_screen(screen)

        is_manual = screen in self._manual_screens if manual is None else bool(manual)
        session = ScreenSession(
            screen,
            clock=self._clock,
            scheduler=self._scheduler,
            frame_thresholds=self._frame_thresholds,
            display_thresholds=self._display_thresholds,
            manual=is_manual,
            fully_drawn=lambda: screen in self._fully_drawn,
        )
        self._sessions[screen] = session
        self._sessions_started += 1

        session.begin()
        return session

    def finalize_screen(self, screen: str, immediate: bool = False) -> Optional[ScreenSession]:
        """
        Finish tracking a screen and emit its beacon.

        Args:
            screen: Screen identifier
            immediate: Emit now, skipping the settle delay

        Returns:
            The finalized session (its beacon may still be settling), or
            None if the screen was not tracked.
        """
        session = self._sessions.pop(screen, None)

        if self._history and self._history[-1] == screen:
            self._history.pop()

        self._fully_drawn.discard(screen)
        self.correlator.set_current_screen(self.current_screen)

        if session is None:
            logger.info(f"[{screen}] Not tracked, nothing to finalize")
            return None

        network = self.correlator.consume_for_screen(screen)
        session.close()

        if not immediate and self.settle_delay_ms > 0 and self._scheduler is not None:
            entry = _SettlingSession(session=session, network=network)
            entry.handle = self._scheduler.call_later(
                self.settle_delay_ms, lambda: self._settle(entry)
            )
            self._settling.append(entry)
            logger.debug(f"[{screen}] Settling for {self.settle_delay_ms:.0f}ms")
        else:
            self._emit(session, network)

        return session

    def resume_previous_screen(self) -> Optional[ScreenSession]:
        """Restart tracking for the screen on top of the history."""
        screen = self.current_screen
        if screen is None:
            logger.info("No screen in history to resume")
            return None

        logger.info(f"[{screen}] Resuming")
        return self.start_tracking(screen)

    def shutdown(self) -> int:
        """
        Finalize every live session and flush every settling one.

        Returns:
            Number of beacons emitted by the flush.
        """
        for screen in list(self._sessions):
            self.finalize_screen(screen)

        settling, self._settling = self._settling, []
        for entry in settling:
            if entry.handle is not None:
                entry.handle.cancel()
            self._emit(entry.session, entry.network)

        if settling:
            logger.info(f"Flushed {len(settling)} settling beacons on shutdown")
        return len(settling)

    # -------------------------------------------------------------------------
    # Inbound events
    # -------------------------------------------------------------------------

    def on_frame_rendered(
        self,
        timestamp_ms: float,
        phase: Union[RenderPhase, str] = RenderPhase.UNKNOWN,
    ) -> None:
        """Dispatch a rendered frame to live and settling sessions."""
        for session in list(self._sessions.values()):
            session.on_frame(timestamp_ms, phase)
        for entry in list(self._settling):
            entry.session.collector.on_frame(timestamp_ms, phase)

    def on_user_interaction(self) -> None:
        """Forward an interaction to the session of the current screen."""
        screen = self.current_screen
        session = self._sessions.get(screen) if screen is not None else None
        if session is None:
            logger.debug("Interaction with no tracked screen")
            return
        session.on_user_interaction()

    def on_network_event(
        self,
        descriptor: NetworkDescriptor,
        screen: Optional[str] = None,
    ) -> bool:
        """Route a request descriptor to an explicit or the current screen."""
        if screen is not None:
            return self.correlator.add_request(screen, descriptor)
        return self.correlator.add_to_current_screen(descriptor)

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def _settle(self, entry: _SettlingSession) -> None:
        if entry not in self._settling:
            return
        self._settling.remove(entry)
        self._emit(entry.session, entry.network)

    def _emit(self, session: ScreenSession, network: List[NetworkDescriptor]) -> Beacon:
        beacon = session.finalize(network)
        self._beacons_emitted += 1

        try:
            self.transport.send(beacon)
        except Exception:
            self._transport_failures += 1
            logger.exception(f"[{session.screen}] Beacon transport failed")

        return beacon

    def metrics(self) -> dict:
        """
        Get registry metrics for observability.

        Returns:
            Dict with session counts, history depth and emission counters
        """
        return {
            "active_sessions": len(self._sessions),
            "settling_sessions": len(self._settling),
            "history_depth": len(self._history),
            "current_screen": self.current_screen,
            "manual_screens": len(self._manual_screens),
            "sessions_started": self._sessions_started,
            "beacons_emitted": self._beacons_emitted,
            "transport_failures": self._transport_failures,
        }
