"""
Test Configuration
==================

Pytest fixtures and test configuration for Orion screen telemetry.
"""

from typing import Iterable, List

import pytest

from orion_telemetry.models.beacon import Beacon
from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.network.correlator import NetworkCorrelator
from orion_telemetry.session.registry import SessionRegistry
from orion_telemetry.timing.clock import ManualClock
from orion_telemetry.timing.scheduler import ManualScheduler


class CollectingTransport:
    """Transport that keeps every beacon in a list."""

    def __init__(self) -> None:
        self.beacons: List[Beacon] = []

    def send(self, beacon: Beacon) -> None:
        self.beacons.append(beacon)

    @property
    def screens(self) -> List[str]:
        return [beacon.screen for beacon in self.beacons]


class FailingTransport:
    """Transport that always raises."""

    def __init__(self) -> None:
        self.calls = 0

    def send(self, beacon: Beacon) -> None:
        self.calls += 1
        raise RuntimeError("collector unreachable")


def drive_frames(target, scheduler: ManualScheduler, intervals: Iterable[float],
                 start_ts: float = 0.0, phase: str = "unknown") -> float:
    """
    Advance the scheduler by each interval and deliver one frame.

    `target` is anything with on_frame(ts, phase) or on_frame_rendered(ts, phase).

    Returns:
        Timestamp of the last delivered frame.
    """
    deliver = getattr(target, "on_frame_rendered", None) or target.on_frame
    ts = start_ts
    for interval in intervals:
        scheduler.advance(interval)
        ts += interval
        deliver(ts, phase)
    return ts


@pytest.fixture
def clock():
    """Manual clock starting at 0 ms."""
    return ManualClock(start_ms=0.0)


@pytest.fixture
def scheduler(clock):
    """Manual scheduler driving the clock fixture."""
    return ManualScheduler(clock)


@pytest.fixture
def transport():
    return CollectingTransport()


@pytest.fixture
def correlator():
    return NetworkCorrelator(max_requests_per_screen=150, max_query_length=50)


@pytest.fixture
def registry(transport, correlator, clock, scheduler):
    """Registry that emits beacons immediately."""
    return SessionRegistry(
        transport=transport,
        correlator=correlator,
        clock=clock,
        scheduler=scheduler,
        settle_delay_ms=0,
    )


@pytest.fixture
def sample_descriptor():
    """Provide a sample NetworkDescriptor for testing."""
    return NetworkDescriptor(
        method="GET",
        url="https://api.example.com/feed?page=1",
        status_code=200,
        start_time_ms=1770500938284.0,
        end_time_ms=1770500938410.0,
        duration_ms=126.0,
        payload_size=5120,
        content_type="application/json",
    )
