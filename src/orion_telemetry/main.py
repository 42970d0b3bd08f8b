"""
Orion Screen Telemetry Main Application
=======================================

FastAPI entry point for the screen telemetry service.

A host application that cannot embed the engine directly streams its
navigation, frame, interaction and network events here and reads back the
resulting beacons.

Endpoints:
    GET  /                              - Service information
    GET  /health                        - Liveness probe
    GET  /metrics                       - Registry, correlator and transport counters
    POST /screens/{screen}/start        - Start tracking a screen
    POST /screens/{screen}/finalize     - Finish tracking a screen
    POST /screens/{screen}/fully-drawn  - Manual TTFD signal
    POST /screens/resume                - Resume the previous screen
    GET  /screens/last                  - Previous screen in history
    POST /frames                        - Frame rendered
    POST /interactions                  - User interaction
    POST /network                       - Network request descriptor
    GET  /beacons                       - Recent beacons
    GET  /beacons/latest                - Latest beacon
    WS   /ws/beacons                    - Beacon stream
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from orion_telemetry import __version__
from orion_telemetry.config import settings, setup_logging
from orion_telemetry.display import DisplayThresholds
from orion_telemetry.frames import FrameThresholds
from orion_telemetry.models.input import FrameEvent, NetworkEvent, StartTrackingRequest
from orion_telemetry.network import NetworkCorrelator
from orion_telemetry.session import SessionRegistry
from orion_telemetry.timing import AsyncioScheduler, MonotonicClock
from orion_telemetry.transport import (
    BeaconStore,
    BeaconTransport,
    FanoutTransport,
    HttpBeaconTransport,
    LoggingTransport,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False

_registry: Optional[SessionRegistry] = None
_correlator: Optional[NetworkCorrelator] = None
_beacon_store: Optional[BeaconStore] = None
_transport: Optional[FanoutTransport] = None

_startup_time: float = 0.0

# Counters
_frames_received: int = 0
_interactions_received: int = 0


# =============================================================================
# Getters
# =============================================================================

def get_registry() -> Optional[SessionRegistry]:
    return _registry

def get_correlator() -> Optional[NetworkCorrelator]:
    return _correlator

def get_beacon_store() -> Optional[BeaconStore]:
    return _beacon_store


# =============================================================================
# Transport Factory
# =============================================================================

def create_transport(store: BeaconStore) -> FanoutTransport:
    """
    Create the beacon transport chain based on config.

    The in-memory store always receives beacons; the configured backend is
    added next to it. Fails fast on an unknown backend or a missing URL.
    """
    backend = settings.transport.backend
    targets: List[BeaconTransport] = [store]

    if backend == "log":
        logger.info("Using LoggingTransport")
        targets.append(LoggingTransport())

    elif backend == "http":
        if not settings.transport.url:
            raise RuntimeError(
                "HTTP transport requested but no URL configured. "
                "Set transport.url or ORION_TRANSPORT_URL"
            )
        logger.info(f"Using HttpBeaconTransport: url={settings.transport.url}")
        targets.append(HttpBeaconTransport(
            url=settings.transport.url,
            timeout_seconds=settings.transport.timeout_seconds,
            api_key=settings.transport.api_key,
        ))

    else:
        raise ValueError(f"Unknown transport backend: {backend}")

    return FanoutTransport(targets)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _registry, _correlator, _beacon_store, _transport
    global _startup_time, _shutdown_flag

    setup_logging(settings)

    # Startup
    _shutdown_flag = False
    _startup_time = time.time()
    logger.info(f"Starting {settings.service.name} {settings.service.version}")
    logger.info(f"Configured port: {settings.server.port}")

    _correlator = NetworkCorrelator(
        max_requests_per_screen=settings.network.max_requests_per_screen,
        max_query_length=settings.network.max_query_length,
    )
    _beacon_store = BeaconStore(maxsize=settings.transport.store_size)
    _transport = create_transport(_beacon_store)

    frame_thresholds = FrameThresholds(
        jank_threshold_ms=settings.frames.jank_threshold_ms,
        frozen_threshold_ms=settings.frames.frozen_threshold_ms,
        min_cluster_size=settings.frames.min_cluster_size,
        max_clusters=settings.frames.max_clusters,
    )
    display_thresholds = DisplayThresholds(
        stable_frame_max_ms=settings.display.stable_frame_max_ms,
        stable_reset_ms=settings.display.stable_reset_ms,
        required_stable_frames=settings.display.required_stable_frames,
        ttfd_timeout_ms=settings.display.ttfd_timeout_ms,
        manual_poll_interval_ms=settings.display.manual_poll_interval_ms,
    )

    _registry = SessionRegistry(
        transport=_transport,
        correlator=_correlator,
        clock=MonotonicClock(),
        scheduler=AsyncioScheduler(),
        frame_thresholds=frame_thresholds,
        display_thresholds=display_thresholds,
        settle_delay_ms=settings.session.settle_delay_ms,
    )

    logger.info("All components started")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    flushed = _registry.shutdown()
    logger.info(f"Registry shut down ({flushed} settling beacons flushed)")

    _transport.close()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Orion Screen Telemetry",
    description="Screen rendering performance telemetry: TTID, TTFD, jank and network correlation",
    version=__version__,
    lifespan=lifespan,
)


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Service not initialized"}, status_code=503)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "Orion Screen Telemetry",
        "version": settings.service.version,
        "name": settings.service.name,
        "status": "running",
        "transport_backend": settings.transport.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    registry = get_registry()
    correlator = get_correlator()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "frames_received": _frames_received,
        "interactions_received": _interactions_received,
        "registry": registry.metrics() if registry else {},
        "network": correlator.metrics() if correlator else {},
        "transport": _transport.metrics() if _transport else {},
    })


# -----------------------------------------------------------------------------
# Screens
# -----------------------------------------------------------------------------

@app.post("/screens/resume")
async def resume_screen() -> JSONResponse:
    """Restart tracking for the screen on top of the history."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    session = registry.resume_previous_screen()
    return JSONResponse({
        "resumed": session is not None,
        "screen": session.screen if session else None,
    })


@app.get("/screens/last")
async def last_screen() -> JSONResponse:
    """Second-from-top history entry, without changing the history."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    return JSONResponse({
        "screen": registry.get_last_tracked_screen(),
        "history": registry.history,
    })


@app.post("/screens/{screen}/start")
async def start_screen(screen: str, request: Optional[StartTrackingRequest] = None) -> JSONResponse:
    """Start tracking a screen, finalizing an existing session first."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    manual = request.manual if request is not None else None
    session = registry.start_tracking(screen, manual=manual)
    return JSONResponse({
        "screen": session.screen,
        "manual": session.manual,
        "history": registry.history,
    })


@app.post("/screens/{screen}/finalize")
async def finalize_screen(screen: str) -> JSONResponse:
    """Finish tracking a screen and emit its beacon."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    session = registry.finalize_screen(screen)
    if session is None:
        return JSONResponse(
            {"error": f"Screen not tracked: {screen}"},
            status_code=404,
        )

    return JSONResponse({
        "screen": screen,
        "emitted": session.finalized,
        "timing": session.display.timing.to_payload(),
    })


@app.post("/screens/{screen}/fully-drawn")
async def fully_drawn(screen: str) -> JSONResponse:
    """Manual TTFD signal."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    registry.mark_fully_drawn(screen)
    return JSONResponse({"screen": screen, "fully_drawn": True})


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------

@app.post("/frames")
async def frame_rendered(event: FrameEvent) -> JSONResponse:
    """Frame rendered by the host scheduler."""
    global _frames_received

    registry = get_registry()
    if registry is None:
        return _not_ready()

    _frames_received += 1
    registry.on_frame_rendered(event.timestamp_ms, event.phase)
    return JSONResponse({"accepted": True, "active_screens": registry.active_screens})


@app.post("/interactions")
async def user_interaction() -> JSONResponse:
    """User interaction on the current screen."""
    global _interactions_received

    registry = get_registry()
    if registry is None:
        return _not_ready()

    _interactions_received += 1
    registry.on_user_interaction()
    return JSONResponse({"accepted": True, "screen": registry.current_screen})


@app.post("/network")
async def network_event(event: NetworkEvent) -> JSONResponse:
    """Network request descriptor for an explicit or the current screen."""
    registry = get_registry()
    if registry is None:
        return _not_ready()

    stored = registry.on_network_event(event.request, screen=event.screen)
    return JSONResponse({
        "stored": stored,
        "screen": event.screen or registry.current_screen,
    })


# -----------------------------------------------------------------------------
# Beacons
# -----------------------------------------------------------------------------

@app.get("/beacons")
async def beacons(limit: Optional[int] = None) -> JSONResponse:
    """Recent beacons, oldest first."""
    store = get_beacon_store()
    if store is None:
        return _not_ready()

    items = store.recent(limit)
    return JSONResponse({
        "count": len(items),
        "beacons": [beacon.to_payload() for beacon in items],
    })


@app.get("/beacons/latest")
async def latest_beacon() -> JSONResponse:
    """Latest beacon payload."""
    store = get_beacon_store()
    beacon = store.latest() if store else None

    if beacon is None:
        return JSONResponse(
            {"error": "No beacon available yet"},
            status_code=503,
        )

    return JSONResponse(beacon.to_payload())


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/beacons")
async def beacon_stream(websocket: WebSocket) -> None:
    """
    WebSocket endpoint pushing each new beacon once.

    Checks for new beacons every second. Client messages are read only to
    notice disconnects.
    """
    await websocket.accept()
    logger.info("Client connected to /ws/beacons")

    store = get_beacon_store()
    cursor = store.sequence if store else 0

    try:
        while not _shutdown_flag:
            store = get_beacon_store()
            if store is not None:
                for sequence, beacon in store.since(cursor):
                    await websocket.send_json(beacon.to_payload())
                    cursor = sequence
            try:
                await asyncio.wait_for(websocket.receive_text(), timeout=1.0)
            except asyncio.TimeoutError:
                pass

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/beacons")


# =============================================================================
# Entry Point
# =============================================================================

def run() -> None:
    """Run the service with uvicorn."""
    uvicorn.run(
        "orion_telemetry.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    run()
