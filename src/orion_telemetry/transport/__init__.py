"""
Transport Module
================

Where finalized beacons go.

    - base.py: BeaconTransport protocol, logging, in-memory store, fan-out
    - http.py: HttpBeaconTransport (requests, background worker)
"""

from orion_telemetry.transport.base import (
    BeaconStore,
    BeaconTransport,
    FanoutTransport,
    LoggingTransport,
)
from orion_telemetry.transport.http import HttpBeaconTransport

__all__ = [
    "BeaconTransport",
    "BeaconStore",
    "FanoutTransport",
    "LoggingTransport",
    "HttpBeaconTransport",
]
