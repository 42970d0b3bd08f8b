"""
Transport Tests
===============

Tests for the beacon store, logging, fan-out and HTTP transports.
"""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from conftest import FailingTransport
from orion_telemetry.models import Beacon, DisplayTiming, FrameSummary, TtfdSource
from orion_telemetry.transport import (
    BeaconStore,
    FanoutTransport,
    HttpBeaconTransport,
    LoggingTransport,
)


def make_beacon(screen="HomeScreen", ttfd=318):
    return Beacon.assemble(
        screen=screen,
        timing=DisplayTiming(ttid=42, ttfd=ttfd, ttfd_source=TtfdSource.STABLE_FRAMES),
        frame_summary=FrameSummary.empty(),
        network_requests=[],
        started_at=1770500938.284,
    )


class TestBeaconPayload:
    """Tests for the outbound beacon contract."""

    def test_camel_case_and_omitted_none(self):
        payload = make_beacon().to_payload()

        assert payload["screen"] == "HomeScreen"
        assert payload["ttid"] == 42
        assert payload["ttfd"] == 318
        assert payload["ttfdSource"] == "stable_frames"
        assert payload["interacted"] is False
        assert "interactionTimeMs" not in payload
        assert payload["startedAt"] == 1770500938.284
        assert payload["networkRequests"] == []
        assert payload["frameSummary"]["frozenFrames"] == 0
        assert "frozenFrameList" not in payload["frameSummary"]


class TestBeaconStore:
    """Tests for the bounded beacon store."""

    def test_latest_and_recent(self):
        store = BeaconStore(maxsize=3)
        assert store.latest() is None

        for n in range(5):
            store.send(make_beacon(screen=f"S{n}"))

        assert store.size == 3
        assert store.latest().screen == "S4"
        assert [b.screen for b in store.recent()] == ["S2", "S3", "S4"]
        assert [b.screen for b in store.recent(limit=2)] == ["S3", "S4"]

    def test_since_cursor(self):
        store = BeaconStore()
        store.send(make_beacon(screen="A"))
        cursor = store.sequence
        store.send(make_beacon(screen="B"))
        store.send(make_beacon(screen="C"))

        newer = store.since(cursor)
        assert [b.screen for _, b in newer] == ["B", "C"]
        assert newer[-1][0] == store.sequence

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            BeaconStore(maxsize=0)


class TestLoggingTransport:
    def test_logs_payload(self, caplog):
        transport = LoggingTransport()
        with caplog.at_level(logging.INFO):
            transport.send(make_beacon())
        assert any('"ttfdSource":"stable_frames"' in r.getMessage() for r in caplog.records)
        assert transport.sent_count == 1


class TestFanoutTransport:
    """Tests for failure isolation."""

    def test_failing_target_does_not_block_others(self):
        store = BeaconStore()
        failing = FailingTransport()
        fanout = FanoutTransport([failing, store])

        fanout.send(make_beacon())

        assert failing.calls == 1
        assert store.size == 1
        assert fanout.failure_count == 1
        assert fanout.metrics()["failure_count"] == 1


class TestHttpBeaconTransport:
    """Tests for the HTTP forwarder (requests session mocked)."""

    def test_posts_payload(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        transport = HttpBeaconTransport(
            "https://collector.example.com/beacons", api_key="token", session=session,
        )

        transport.send(make_beacon())
        transport.close()

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://collector.example.com/beacons"
        assert kwargs["json"]["screen"] == "HomeScreen"
        assert kwargs["timeout"] == 5.0
        assert session.headers["Authorization"] == "Bearer token"
        assert transport.sent_count == 1

    def test_failure_is_counted_not_raised(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        session.post.side_effect = requests.ConnectionError("down")
        transport = HttpBeaconTransport("https://collector.example.com/beacons", session=session)

        transport.send(make_beacon())
        transport.close()

        assert transport.failure_count == 1
        assert transport.sent_count == 0

    def test_send_after_close_dropped(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        transport = HttpBeaconTransport("https://collector.example.com/beacons", session=session)
        transport.close()

        transport.send(make_beacon())
        session.post.assert_not_called()

    def test_url_required(self):
        with pytest.raises(ValueError):
            HttpBeaconTransport("")
