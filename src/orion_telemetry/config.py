"""
Orion Telemetry Configuration
=============================

This module handles configuration loading for the screen telemetry service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    ORION_JANK_THRESHOLD_MS        -> frames.jank_threshold_ms
    ORION_FROZEN_THRESHOLD_MS      -> frames.frozen_threshold_ms
    ORION_REQUIRED_STABLE_FRAMES   -> display.required_stable_frames
    ORION_TTFD_TIMEOUT_MS          -> display.ttfd_timeout_ms
    ORION_MAX_REQUESTS_PER_SCREEN  -> network.max_requests_per_screen
    ORION_MAX_QUERY_LENGTH         -> network.max_query_length
    ORION_SETTLE_DELAY_MS          -> session.settle_delay_ms
    ORION_TRANSPORT_BACKEND        -> transport.backend
    ORION_TRANSPORT_URL            -> transport.url
    ORION_PORT                     -> server.port
    ORION_LOG_LEVEL                -> logging.level
    PORT                           -> server.port (Cloud Run)

Example:
    from orion_telemetry.config import settings

    print(settings.frames.jank_threshold_ms)
    print(settings.display.ttfd_timeout_ms)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="orion-screen-telemetry", description="Service name")
    version: str = Field(default="v0.1.0", description="Beacon protocol version")


class FrameConfig(BaseModel):
    """Frame classification and jank clustering configuration."""

    jank_threshold_ms: float = Field(
        default=16.67,
        gt=0,
        description="Frames longer than this are janky (one 60 Hz budget)",
    )
    frozen_threshold_ms: float = Field(
        default=700.0,
        gt=0,
        description="Frames longer than this are frozen",
    )
    min_cluster_size: int = Field(
        default=3,
        ge=1,
        description="Minimum consecutive janky frames forming a cluster",
    )
    max_clusters: int = Field(
        default=10,
        ge=1,
        description="Maximum clusters reported per screen, ranked by severity",
    )


class DisplayConfig(BaseModel):
    """TTID/TTFD capture configuration."""

    stable_frame_max_ms: float = Field(
        default=16.0,
        gt=0,
        description="Inter-frame duration at or below which a frame counts as stable",
    )
    stable_reset_ms: float = Field(
        default=32.0,
        gt=0,
        description="Inter-frame duration above which the stable run resets",
    )
    required_stable_frames: int = Field(
        default=3,
        ge=1,
        description="Consecutive stable frames required for TTFD",
    )
    ttfd_timeout_ms: float = Field(
        default=10000.0,
        gt=0,
        description="TTFD is forced after this elapsed time",
    )
    manual_poll_interval_ms: float = Field(
        default=50.0,
        gt=0,
        description="Polling interval for the manual fully-drawn flag",
    )


class NetworkConfig(BaseModel):
    """Per-screen network correlation configuration."""

    max_requests_per_screen: int = Field(
        default=150,
        ge=1,
        description="Requests beyond this count are dropped for the screen",
    )
    max_query_length: int = Field(
        default=50,
        ge=0,
        description="Query strings are truncated to this many characters",
    )


class SessionConfig(BaseModel):
    """Screen session lifecycle configuration."""

    settle_delay_ms: float = Field(
        default=100.0,
        ge=0,
        description="Delay between finalize and beacon emission (0 = immediate)",
    )


class TransportConfig(BaseModel):
    """Beacon transport configuration."""

    backend: str = Field(
        default="log",
        description="Beacon transport: 'log' or 'http'",
    )
    url: Optional[str] = Field(
        default=None,
        description="Collector endpoint for the http backend",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="HTTP timeout per beacon",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Optional bearer token sent with each beacon",
    )
    store_size: int = Field(
        default=200,
        ge=1,
        description="Number of recent beacons kept for the /beacons endpoint",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for Orion screen telemetry.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    frames: FrameConfig = Field(default_factory=FrameConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Frame classification
    if env_jank := os.environ.get("ORION_JANK_THRESHOLD_MS"):
        config_data.setdefault("frames", {})["jank_threshold_ms"] = float(env_jank)
    if env_frozen := os.environ.get("ORION_FROZEN_THRESHOLD_MS"):
        config_data.setdefault("frames", {})["frozen_threshold_ms"] = float(env_frozen)

    # Display timing
    if env_stable := os.environ.get("ORION_REQUIRED_STABLE_FRAMES"):
        config_data.setdefault("display", {})["required_stable_frames"] = int(env_stable)
    if env_timeout := os.environ.get("ORION_TTFD_TIMEOUT_MS"):
        config_data.setdefault("display", {})["ttfd_timeout_ms"] = float(env_timeout)

    # Network correlation
    if env_max := os.environ.get("ORION_MAX_REQUESTS_PER_SCREEN"):
        config_data.setdefault("network", {})["max_requests_per_screen"] = int(env_max)
    if env_query := os.environ.get("ORION_MAX_QUERY_LENGTH"):
        config_data.setdefault("network", {})["max_query_length"] = int(env_query)

    # Session lifecycle
    if env_settle := os.environ.get("ORION_SETTLE_DELAY_MS"):
        config_data.setdefault("session", {})["settle_delay_ms"] = float(env_settle)

    # Transport
    if env_backend := os.environ.get("ORION_TRANSPORT_BACKEND"):
        config_data.setdefault("transport", {})["backend"] = env_backend
    if env_url := os.environ.get("ORION_TRANSPORT_URL"):
        config_data.setdefault("transport", {})["url"] = env_url

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("ORION_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("ORION_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Consumed by the service entry point only; library classes take explicit
# threshold objects.
settings = load_config()
