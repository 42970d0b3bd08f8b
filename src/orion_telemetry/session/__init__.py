"""
Session Module
==============

Per-screen lifecycle and the registry that routes events to it.

    - screen.py: ScreenSession, collector + state machine for one visit
    - registry.py: SessionRegistry, sessions, history and beacon emission
"""

from orion_telemetry.session.screen import ScreenSession
from orion_telemetry.session.registry import SessionRegistry

__all__ = [
    "ScreenSession",
    "SessionRegistry",
]
