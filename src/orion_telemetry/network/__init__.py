"""
Network Correlation Module
==========================

Ties outbound HTTP requests to the screen that issued them.

    - correlator.py: NetworkCorrelator, per-screen bounded buffers
    - requests_adapter.py: TrackedSession, a reporting requests.Session
"""

from orion_telemetry.network.correlator import NetworkCorrelator, cap_url
from orion_telemetry.network.requests_adapter import TrackedSession, parse_response_time

__all__ = [
    "NetworkCorrelator",
    "cap_url",
    "TrackedSession",
    "parse_response_time",
]
