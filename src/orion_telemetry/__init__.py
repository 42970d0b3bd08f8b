"""
Orion Screen Telemetry
======================

Screen-performance telemetry engine for interactive applications.

For every visit to a screen the engine measures:
    - TTID: time until the first frame rendered
    - TTFD: time until the content became usable
    - rendering smoothness: janky/frozen frames and jank clusters
    - the network requests issued while the screen was active

and emits one beacon when the visit ends.

Components:
    - frames: frame timing collector and jank clustering
    - display: TTID/TTFD state machine
    - network: per-screen request correlator and requests adapter
    - session: ScreenSession and SessionRegistry
    - transport: beacon destinations
    - timing: clocks and cancellable timers

Example:
    from orion_telemetry.session import SessionRegistry
    from orion_telemetry.transport import LoggingTransport

    registry = SessionRegistry(transport=LoggingTransport(), settle_delay_ms=0)
    registry.start_tracking("Home")
    registry.on_frame_rendered(1000.0)
    registry.finalize_screen("Home")

    # The HTTP service is started via main.py
"""

__version__ = "0.1.0"
__author__ = "Orion Project"

__all__ = [
    "__version__",
]
