"""
Jank Clustering
===============

Groups consecutive janky frames into clusters and ranks them.

A single slow frame is rarely noticed; a run of them is what users perceive
as stutter. Clusters summarise those runs so a beacon carries a handful of
events instead of every frame.

Severity Score (ranking only, never reported):
    severity = 0.3 * avg_duration + 0.4 * worst_duration
             + 5 * frame_count + early_bonus

    early_bonus = 20 when the cluster starts within the first 10 frames.

Design Note:
    Clusters are recomputed from the full sample list on every stop. Nothing
    here mutates a cluster after it is built.
"""

import logging
from typing import Iterable, List, Sequence

import numpy as np

from orion_telemetry.frames.sample import FrameSample, RenderPhase
from orion_telemetry.models.frames import JankCluster


logger = logging.getLogger(__name__)


AVG_DURATION_WEIGHT = 0.3
WORST_DURATION_WEIGHT = 0.4
FRAME_COUNT_WEIGHT = 5.0
EARLY_FRAME_WINDOW = 10
EARLY_BONUS = 20.0

MIN_CLUSTER_SIZE = 3
MAX_REPORTED_CLUSTERS = 10


def severity_score(
    start_frame: int,
    frame_count: int,
    avg_duration_ms: float,
    worst_duration_ms: float,
) -> float:
    """
    Compute the ranking score for a cluster.

    Args:
        start_frame: Sequence number of the first member
        frame_count: Number of member frames
        avg_duration_ms: Mean member duration
        worst_duration_ms: Longest member duration

    Returns:
        Severity score, higher is worse
    """
    early_bonus = EARLY_BONUS if start_frame <= EARLY_FRAME_WINDOW else 0.0
    return (
        AVG_DURATION_WEIGHT * avg_duration_ms
        + WORST_DURATION_WEIGHT * worst_duration_ms
        + FRAME_COUNT_WEIGHT * frame_count
        + early_bonus
    )


def dominant_phase(phases: Iterable[str]) -> str:
    """
    Most frequent phase; ties go to the phase seen first.

    Returns 'unknown' for an empty input.
    """
    counts: dict = {}
    for phase in phases:
        counts[phase] = counts.get(phase, 0) + 1

    if not counts:
        return RenderPhase.UNKNOWN.value

    # dict preserves first-seen order and max() keeps the first maximum
    return max(counts, key=lambda phase: counts[phase])


def build_cluster(members: Sequence[FrameSample], cluster_id: int) -> JankCluster:
    """Materialise a JankCluster from a run of janky samples."""
    if len(members) < 1:
        raise ValueError("cluster needs at least one member")

    durations = np.fromiter((s.duration_ms for s in members), dtype=float)
    avg_duration = float(durations.mean())
    worst_duration = float(durations.max())

    first, last = members[0], members[-1]

    return JankCluster(
        id=cluster_id,
        start_frame=first.sequence,
        end_frame=last.sequence,
        start_time_ms=round(first.timestamp_ms, 2),
        end_time_ms=round(last.timestamp_ms + last.duration_ms, 2),
        avg_duration_ms=round(avg_duration, 2),
        worst_duration_ms=round(worst_duration, 2),
        phase=dominant_phase(s.phase for s in members),
        severity=severity_score(
            start_frame=first.sequence,
            frame_count=len(members),
            avg_duration_ms=avg_duration,
            worst_duration_ms=worst_duration,
        ),
    )


def detect_jank_clusters(
    samples: Sequence[FrameSample],
    min_size: int = MIN_CLUSTER_SIZE,
) -> List[JankCluster]:
    """
    Find every maximal run of at least `min_size` consecutive janky samples.

    Args:
        samples: Samples in sequence order
        min_size: Minimum run length

    Returns:
        Clusters in detection order, ids starting at 1
    """
    if min_size < 1:
        raise ValueError("min_size must be >= 1")

    clusters: List[JankCluster] = []
    run: List[FrameSample] = []

    for sample in samples:
        if sample.is_janky:
            run.append(sample)
            continue

        if len(run) >= min_size:
            clusters.append(build_cluster(run, len(clusters) + 1))
        run = []

    # Stream may end inside a run
    if len(run) >= min_size:
        clusters.append(build_cluster(run, len(clusters) + 1))

    return clusters


def select_top_clusters(
    clusters: Sequence[JankCluster],
    limit: int = MAX_REPORTED_CLUSTERS,
) -> List[JankCluster]:
    """
    Rank clusters by severity (worst first) and keep at most `limit`.

    Equal scores keep detection order. Cluster ids are left unchanged.
    """
    ranked = sorted(clusters, key=lambda c: c.severity, reverse=True)
    return ranked[:limit]
