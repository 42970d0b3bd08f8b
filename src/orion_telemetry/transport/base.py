"""
Beacon Transports
=================

Destinations for finalized beacons.

Transports:
    - LoggingTransport: writes each beacon as one JSON log line
    - BeaconStore: bounded in-memory history read by the HTTP service
    - FanoutTransport: forwards to several transports, isolating failures

Design Rules:
    - send() never blocks on network I/O
    - A failing transport never affects session state
"""

import json
import logging
import threading
from collections import deque
from typing import Deque, List, Optional, Protocol, Sequence, Tuple

from orion_telemetry.models.beacon import Beacon


logger = logging.getLogger(__name__)


class BeaconTransport(Protocol):
    """Anything that accepts finalized beacons."""

    def send(self, beacon: Beacon) -> None:
        ...


class LoggingTransport:
    """Emit beacons to the log."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level
        self.sent_count: int = 0

    def send(self, beacon: Beacon) -> None:
        logger.log(
            self.level,
            f"Beacon [{beacon.screen}]: {json.dumps(beacon.to_payload(), separators=(',', ':'))}",
        )
        self.sent_count += 1

    def metrics(self) -> dict:
        return {"type": "log", "sent_count": self.sent_count}


class BeaconStore:
    """
    Bounded store of recent beacons.

    Every stored beacon gets a sequence number so readers can poll for
    "everything after N" without missing or repeating entries.

    Attributes:
        maxsize: Maximum beacons kept (oldest evicted first)

    Example:
        store = BeaconStore(maxsize=100)
        store.send(beacon)

        cursor = 0
        for seq, beacon in store.since(cursor):
            cursor = seq
    """

    def __init__(self, maxsize: int = 200) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._lock = threading.Lock()
        self._items: Deque[Tuple[int, Beacon]] = deque(maxlen=maxsize)
        self._sequence: int = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def sequence(self) -> int:
        """Sequence number of the most recent beacon (0 when empty)."""
        with self._lock:
            return self._sequence

    def send(self, beacon: Beacon) -> None:
        with self._lock:
            self._sequence += 1
            self._items.append((self._sequence, beacon))

    def latest(self) -> Optional[Beacon]:
        with self._lock:
            return self._items[-1][1] if self._items else None

    def recent(self, limit: Optional[int] = None) -> List[Beacon]:
        """Stored beacons, oldest first, optionally only the last `limit`."""
        with self._lock:
            beacons = [beacon for _, beacon in self._items]
        if limit is not None:
            beacons = beacons[-limit:] if limit > 0 else []
        return beacons

    def since(self, sequence: int) -> List[Tuple[int, Beacon]]:
        """Beacons stored after `sequence`, as (sequence, beacon) pairs."""
        with self._lock:
            return [(seq, beacon) for seq, beacon in self._items if seq > sequence]

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._items)
            self._items.clear()
        return cleared

    def metrics(self) -> dict:
        with self._lock:
            return {
                "type": "store",
                "size": len(self._items),
                "maxsize": self._maxsize,
                "sequence": self._sequence,
            }


class FanoutTransport:
    """
    Forward each beacon to every target.

    A target that raises is logged and counted; the remaining targets still
    receive the beacon.
    """

    def __init__(self, targets: Sequence[BeaconTransport]) -> None:
        self.targets = list(targets)
        self.failure_count: int = 0

    def send(self, beacon: Beacon) -> None:
        for target in self.targets:
            try:
                target.send(beacon)
            except Exception:
                self.failure_count += 1
                logger.exception(
                    f"Transport {type(target).__name__} failed for [{beacon.screen}]"
                )

    def close(self) -> None:
        for target in self.targets:
            close = getattr(target, "close", None)
            if close is not None:
                close()

    def metrics(self) -> dict:
        targets = []
        for target in self.targets:
            target_metrics = getattr(target, "metrics", None)
            targets.append(
                target_metrics() if target_metrics else {"type": type(target).__name__}
            )
        return {
            "type": "fanout",
            "failure_count": self.failure_count,
            "targets": targets,
        }
