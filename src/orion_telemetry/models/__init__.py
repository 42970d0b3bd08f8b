"""
Data Models
===========

Pydantic models for Orion screen telemetry.

This module re-exports all data models for convenient access.

Models:
    Frames:
        - JankCluster: Run of consecutive janky frames
        - FrozenFrame: Single stalled frame
        - FrameSummary: Per-screen frame statistics

    Display:
        - TtfdSource: How TTFD was captured
        - DisplayState: State machine lifecycle
        - DisplayTiming: TTID/TTFD snapshot

    Network:
        - NetworkDescriptor: One observed request

    Output:
        - Beacon: Complete per-screen report

    Input:
        - FrameEvent, StartTrackingRequest, NetworkEvent: HTTP service payloads
"""

from orion_telemetry.models.frames import FrameSummary, FrozenFrame, JankCluster
from orion_telemetry.models.display import DisplayState, DisplayTiming, TtfdSource
from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.models.beacon import Beacon
from orion_telemetry.models.input import FrameEvent, NetworkEvent, StartTrackingRequest

__all__ = [
    # Frames
    "JankCluster",
    "FrozenFrame",
    "FrameSummary",
    # Display
    "TtfdSource",
    "DisplayState",
    "DisplayTiming",
    # Network
    "NetworkDescriptor",
    # Output
    "Beacon",
    # Input
    "FrameEvent",
    "StartTrackingRequest",
    "NetworkEvent",
]
