"""
Session Registry Tests
======================

Tests for screen lifecycle, history navigation, event routing and beacon
emission.
"""

import pytest

from conftest import CollectingTransport, FailingTransport, drive_frames
from orion_telemetry.models.display import TtfdSource
from orion_telemetry.session import ScreenSession, SessionRegistry
from orion_telemetry.transport import FanoutTransport


@pytest.fixture
def settling_registry(transport, correlator, clock, scheduler):
    """Registry with the default 100 ms settle delay."""
    return SessionRegistry(
        transport=transport,
        correlator=correlator,
        clock=clock,
        scheduler=scheduler,
        settle_delay_ms=100,
    )


class TestScreenSession:
    """Tests for the per-screen composition."""

    def test_beacon_assembled(self, clock, scheduler, sample_descriptor):
        session = ScreenSession("Home", clock=clock, scheduler=scheduler)
        session.begin()
        session.on_frame(0.0)
        drive_frames(session, scheduler, [16.0] * 4)

        beacon = session.finalize([sample_descriptor])

        assert beacon.screen == "Home"
        assert beacon.ttid == 0
        assert beacon.ttfd_source is TtfdSource.STABLE_FRAMES
        assert beacon.frame_summary.total_frames == 4
        assert len(beacon.network_requests) == 1
        assert beacon.started_at is not None
        assert session.finalize() is beacon

    def test_empty_screen_rejected(self):
        with pytest.raises(ValueError):
            ScreenSession("")


class TestLifecycle:
    """Tests for start/finalize."""

    def test_start_and_finalize_emits_beacon(self, registry, transport, scheduler):
        registry.start_tracking("Home")
        drive_frames(registry, scheduler, [20.0, 16.0, 16.0, 16.0])
        session = registry.finalize_screen("Home")

        assert session is not None
        assert transport.screens == ["Home"]
        beacon = transport.beacons[0]
        assert beacon.ttid == 20
        assert beacon.ttfd == 68
        assert beacon.frame_summary.total_frames == 3
        assert not registry.has_tracked("Home")

    def test_finalize_unknown_is_noop(self, registry, transport):
        assert registry.finalize_screen("Nowhere") is None
        assert transport.beacons == []

    def test_get_session(self, registry):
        session = registry.start_tracking("Home")
        assert registry.get_session("Home") is session
        assert registry.get_session("Details") is None

        registry.finalize_screen("Home")
        assert registry.get_session("Home") is None

    def test_restart_emits_previous_first(self, registry, transport, scheduler):
        """Starting an already tracked screen finalizes the old session."""
        first = registry.start_tracking("Home")
        scheduler.advance(250.0)
        second = registry.start_tracking("Home")

        assert first is not second
        assert transport.screens == ["Home"]
        assert transport.beacons[0].ttfd == 250
        assert transport.beacons[0].ttfd_source is TtfdSource.FINALIZE
        assert registry.has_tracked("Home")
        assert registry.history == ["Home"]

    def test_finalize_without_frames(self, registry, transport, scheduler):
        registry.start_tracking("Blank")
        scheduler.advance(30.0)
        registry.finalize_screen("Blank")

        beacon = transport.beacons[0]
        assert beacon.ttid == -1
        assert beacon.ttfd == 30
        assert beacon.frame_summary.total_frames == 0

    def test_transport_failure_does_not_escape(self, correlator, clock, scheduler):
        failing = FailingTransport()
        registry = SessionRegistry(
            transport=failing, correlator=correlator, clock=clock,
            scheduler=scheduler, settle_delay_ms=0,
        )
        registry.start_tracking("Home")

        session = registry.finalize_screen("Home")

        assert session.finalized
        assert failing.calls == 1
        assert registry.metrics()["transport_failures"] == 1
        assert registry.metrics()["beacons_emitted"] == 1

    def test_fanout_transport_isolates_failures(self, correlator, clock, scheduler):
        good = CollectingTransport()
        registry = SessionRegistry(
            transport=FanoutTransport([FailingTransport(), good]),
            correlator=correlator, clock=clock, scheduler=scheduler, settle_delay_ms=0,
        )
        registry.start_tracking("Home")
        registry.finalize_screen("Home")
        assert good.screens == ["Home"]


class TestHistory:
    """Tests for navigation history."""

    def test_push_and_pop(self, registry):
        registry.start_tracking("Home")
        registry.start_tracking("Details")
        assert registry.history == ["Home", "Details"]
        assert registry.current_screen == "Details"
        assert registry.get_last_tracked_screen() == "Home"

        registry.finalize_screen("Details")
        assert registry.history == ["Home"]
        assert registry.current_screen == "Home"
        assert registry.get_last_tracked_screen() is None

    def test_no_duplicate_adjacent_entries(self, registry):
        registry.start_tracking("Home")
        registry.start_tracking("Home")
        assert registry.history == ["Home"]

    def test_finalize_not_on_top_keeps_history(self, registry):
        registry.start_tracking("Home")
        registry.start_tracking("Details")
        registry.finalize_screen("Home")
        assert registry.history == ["Home", "Details"]

    def test_resume_previous_screen(self, registry, transport):
        """Back navigation restarts tracking of the screen below."""
        registry.start_tracking("Home")
        registry.finalize_screen("Home")
        registry.start_tracking("Home")
        registry.start_tracking("Details")
        registry.finalize_screen("Details")

        session = registry.resume_previous_screen()

        assert session is not None
        assert session.screen == "Home"
        assert registry.has_tracked("Home")
        assert transport.screens == ["Home", "Details", "Home"]

    def test_resume_on_empty_history_is_noop(self, registry, transport):
        assert registry.resume_previous_screen() is None
        assert registry.active_screens == []
        assert transport.beacons == []

    def test_get_last_tracked_does_not_mutate(self, registry):
        registry.start_tracking("A")
        registry.start_tracking("B")
        registry.get_last_tracked_screen()
        assert registry.history == ["A", "B"]


class TestManualScreens:
    """Tests for manual TTFD through the registry."""

    def test_registered_screen_uses_manual_mode(self, registry, transport, scheduler):
        registry.register_manual_screen("Checkout")
        session = registry.start_tracking("Checkout")
        assert session.manual

        drive_frames(registry, scheduler, [16.0] * 6)
        registry.mark_fully_drawn("Checkout")
        scheduler.advance(50.0)
        registry.finalize_screen("Checkout")

        beacon = transport.beacons[0]
        assert beacon.ttfd_source is TtfdSource.MANUAL
        assert beacon.ttfd == 100

    def test_manual_flag_on_start(self, registry):
        assert registry.start_tracking("Checkout", manual=True).manual
        assert not registry.is_manual("Checkout")

    def test_fully_drawn_flag_cleared_on_finalize(self, registry):
        registry.start_tracking("Checkout", manual=True)
        registry.mark_fully_drawn("Checkout")
        registry.finalize_screen("Checkout")
        assert not registry.is_fully_drawn("Checkout")

    def test_manual_timeout(self, registry, transport, scheduler):
        registry.start_tracking("Checkout", manual=True)
        scheduler.advance(12000.0)
        registry.finalize_screen("Checkout")

        beacon = transport.beacons[0]
        assert beacon.ttfd_source is TtfdSource.TIMEOUT
        assert 10000 < beacon.ttfd <= 10050

    def test_unregister(self, registry):
        registry.register_manual_screen("Checkout")
        registry.unregister_manual_screen("Checkout")
        assert not registry.start_tracking("Checkout").manual


class TestEventRouting:
    """Tests for frame, interaction and network routing."""

    def test_frames_reach_all_live_sessions(self, registry, scheduler):
        home = registry.start_tracking("Home")
        overlay = registry.start_tracking("Overlay")
        drive_frames(registry, scheduler, [16.0, 16.0])

        assert home.collector.sample_count == 1
        assert overlay.collector.sample_count == 1

    def test_interaction_goes_to_current_screen(self, registry, scheduler):
        home = registry.start_tracking("Home")
        details = registry.start_tracking("Details")
        scheduler.advance(40.0)
        registry.on_user_interaction()

        assert details.display.timing.interacted
        assert not home.display.timing.interacted

    def test_interaction_without_screen(self, registry):
        registry.on_user_interaction()

    def test_network_to_current_screen(self, registry, transport, sample_descriptor):
        registry.start_tracking("Feed")
        assert registry.on_network_event(sample_descriptor)
        registry.finalize_screen("Feed")
        assert len(transport.beacons[0].network_requests) == 1

    def test_network_to_explicit_screen(self, registry, correlator, sample_descriptor):
        registry.start_tracking("Feed")
        registry.on_network_event(sample_descriptor, screen="Profile")
        assert correlator.request_count("Profile") == 1
        assert correlator.request_count("Feed") == 0

    def test_correlator_follows_history(self, registry, correlator):
        registry.start_tracking("Home")
        registry.start_tracking("Details")
        assert correlator.current_screen == "Details"
        registry.finalize_screen("Details")
        assert correlator.current_screen == "Home"
        registry.finalize_screen("Home")
        assert correlator.current_screen is None


class TestSettleDelay:
    """Tests for delayed emission and shutdown."""

    def test_beacon_emitted_after_delay(self, settling_registry, transport, scheduler):
        settling_registry.start_tracking("Home")
        settling_registry.finalize_screen("Home")

        assert transport.beacons == []
        assert settling_registry.settling_count == 1

        scheduler.advance(100.0)
        assert transport.screens == ["Home"]
        assert settling_registry.settling_count == 0

    def test_frames_collected_while_settling(self, settling_registry, transport, scheduler):
        settling_registry.start_tracking("Home")
        settling_registry.on_frame_rendered(0.0)
        settling_registry.finalize_screen("Home")

        drive_frames(settling_registry, scheduler, [20.0, 20.0])
        scheduler.advance(100.0)

        beacon = transport.beacons[0]
        assert beacon.frame_summary.total_frames == 2
        assert beacon.ttid == 0

    def test_network_drained_at_finalize(self, settling_registry, transport, sample_descriptor):
        """A restarted session cannot steal the settling session's requests."""
        settling_registry.start_tracking("Feed")
        settling_registry.on_network_event(sample_descriptor)
        settling_registry.start_tracking("Feed")
        settling_registry.on_network_event(sample_descriptor)
        settling_registry.shutdown()

        first, second = transport.beacons
        assert len(first.network_requests) == 1
        assert len(second.network_requests) == 1

    def test_restart_emits_previous_without_delay(self, settling_registry, transport, scheduler):
        """A duplicate start flushes the old beacon before the new session's frames arrive."""
        settling_registry.start_tracking("Home")
        settling_registry.on_frame_rendered(0.0)
        drive_frames(settling_registry, scheduler, [16.0], start_ts=0.0)

        settling_registry.start_tracking("Home")

        assert transport.screens == ["Home"]
        assert settling_registry.settling_count == 0
        assert scheduler.pending == 0

        drive_frames(settling_registry, scheduler, [16.0, 16.0], start_ts=16.0)
        assert transport.beacons[0].frame_summary.total_frames == 1

    def test_shutdown_flushes_and_cancels(self, settling_registry, transport, scheduler):
        settling_registry.start_tracking("Home")
        settling_registry.start_tracking("Details")
        settling_registry.finalize_screen("Details")

        flushed = settling_registry.shutdown()

        assert flushed == 2
        assert sorted(transport.screens) == ["Details", "Home"]
        assert scheduler.pending == 0
        assert settling_registry.active_screens == []

        scheduler.advance(500.0)
        assert len(transport.beacons) == 2

    def test_no_scheduler_emits_immediately(self, transport, clock):
        registry = SessionRegistry(transport=transport, clock=clock, settle_delay_ms=100)
        registry.start_tracking("Home")
        registry.finalize_screen("Home")
        assert transport.screens == ["Home"]

    def test_metrics(self, settling_registry):
        settling_registry.start_tracking("Home")
        settling_registry.start_tracking("Details")
        settling_registry.finalize_screen("Details")

        metrics = settling_registry.metrics()
        assert metrics["active_sessions"] == 1
        assert metrics["settling_sessions"] == 1
        assert metrics["history_depth"] == 1
        assert metrics["sessions_started"] == 2
        assert metrics["beacons_emitted"] == 0

    def test_negative_delay_rejected(self, transport):
        with pytest.raises(ValueError):
            SessionRegistry(transport=transport, settle_delay_ms=-1)
