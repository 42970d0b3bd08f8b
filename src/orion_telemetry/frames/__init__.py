"""
Frame Timing Module
===================

Frame-duration collection, classification and jank clustering.

This module provides:
    - FrameTimingCollector: per-screen sample accumulator
    - FrameThresholds: janky/frozen limits
    - detect_jank_clusters / select_top_clusters: cluster detection and ranking

No rendering hooks live here; the host pushes timestamps in.
"""

from orion_telemetry.frames.sample import FrameClass, FrameSample, RenderPhase, normalize_phase
from orion_telemetry.frames.clusters import (
    detect_jank_clusters,
    dominant_phase,
    select_top_clusters,
    severity_score,
)
from orion_telemetry.frames.collector import FrameThresholds, FrameTimingCollector

__all__ = [
    # Samples
    "FrameClass",
    "FrameSample",
    "RenderPhase",
    "normalize_phase",
    # Clustering
    "detect_jank_clusters",
    "dominant_phase",
    "select_top_clusters",
    "severity_score",
    # Collector
    "FrameThresholds",
    "FrameTimingCollector",
]
