#!/usr/bin/env python3
"""
Screen Simulation Script
========================

Standalone script that replays a synthetic frame trace through the
telemetry engine and prints the resulting beacon.

This script:
    1. Builds a SessionRegistry on a deterministic clock/scheduler
    2. Starts tracking a screen (automatic or manual TTFD)
    3. Generates frame intervals at the target rate, injecting jank bursts
       and optional frozen frames
    4. Finalizes the screen and prints the beacon as JSON

No network access and no running service are needed.

Usage:
    python scripts/simulate_screen.py --frames 240 --jank-rate 0.05
    python scripts/simulate_screen.py --manual --fully-drawn-at 850
    python scripts/simulate_screen.py --freeze-at 60 --seed 7
"""

import argparse
import json
import logging
import os
import sys

import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.session import SessionRegistry
from orion_telemetry.timing import ManualClock, ManualScheduler
from orion_telemetry.transport import BeaconStore


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


PHASES = ["build", "animation", "microtasks", "postFrame", "idle"]


def generate_intervals(
    frames: int,
    fps: float,
    jank_rate: float,
    burst_length: int,
    freeze_at: int,
    seed: int,
) -> np.ndarray:
    """
    Generate inter-frame intervals in milliseconds.

    Args:
        frames: Number of frames
        fps: Nominal frame rate
        jank_rate: Probability that a frame starts a jank burst
        burst_length: Frames per jank burst
        freeze_at: Frame index of a single frozen frame (-1 = none)
        seed: RNG seed

    Returns:
        Array of intervals, one per frame
    """
    rng = np.random.default_rng(seed)
    budget = 1000.0 / fps

    intervals = rng.normal(loc=budget * 0.9, scale=budget * 0.05, size=frames)
    intervals = np.clip(intervals, 1.0, budget)

    i = 0
    while i < frames:
        if rng.random() < jank_rate:
            end = min(frames, i + burst_length)
            intervals[i:end] = rng.uniform(budget * 1.5, budget * 4.0, size=end - i)
            i = end
        else:
            i += 1

    if 0 <= freeze_at < frames:
        intervals[freeze_at] = rng.uniform(750.0, 1200.0)

    return intervals


def run_simulation(
    screen: str,
    frames: int,
    fps: float,
    jank_rate: float,
    burst_length: int,
    freeze_at: int,
    manual: bool,
    fully_drawn_at: float,
    requests: int,
    seed: int,
) -> dict:
    """
    Run the simulation.

    Returns:
        Beacon payload dict
    """
    logger.info("=" * 60)
    logger.info("Screen Simulation")
    logger.info("=" * 60)
    logger.info(f"Screen: {screen} ({'manual' if manual else 'automatic'} TTFD)")
    logger.info(f"Frames: {frames} @ {fps:.0f} fps, jank rate {jank_rate:.2f}")
    logger.info("=" * 60)

    clock = ManualClock(start_ms=0.0)
    scheduler = ManualScheduler(clock)
    store = BeaconStore(maxsize=10)

    registry = SessionRegistry(
        transport=store,
        clock=clock,
        scheduler=scheduler,
        settle_delay_ms=100.0,
    )

    registry.start_tracking(screen, manual=manual)

    for n in range(requests):
        start = 1_700_000_000_000.0 + n * 40.0
        registry.on_network_event(NetworkDescriptor(
            method="GET",
            url=f"https://api.example.com/{screen.lower()}/items?page={n + 1}&size=20",
            status_code=200,
            start_time_ms=start,
            end_time_ms=start + 35.0,
            duration_ms=35.0,
            payload_size=2048,
            content_type="application/json",
        ))

    intervals = generate_intervals(frames, fps, jank_rate, burst_length, freeze_at, seed)
    timestamp = 0.0
    drawn = False

    for index, interval in enumerate(intervals):
        scheduler.advance(float(interval))
        timestamp += float(interval)

        if manual and not drawn and fully_drawn_at >= 0 and clock.now_ms() >= fully_drawn_at:
            registry.mark_fully_drawn(screen)
            drawn = True

        registry.on_frame_rendered(timestamp, PHASES[index % len(PHASES)])

    registry.finalize_screen(screen)
    scheduler.advance(200.0)
    registry.shutdown()

    beacon = store.latest()
    if beacon is None:
        logger.error("No beacon emitted")
        return {}

    summary = beacon.frame_summary
    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"TTID: {beacon.ttid} ms")
    logger.info(f"TTFD: {beacon.ttfd} ms ({beacon.ttfd_source.value if beacon.ttfd_source else None})")
    logger.info(f"Janky: {summary.janky_frames}/{summary.total_frames} ({summary.janky_percentage}%)")
    logger.info(f"Frozen: {summary.frozen_frames}")
    logger.info(f"Clusters reported: {len(summary.jank_clusters)}")
    logger.info(f"Network requests: {len(beacon.network_requests)}")
    logger.info("=" * 60)

    return beacon.to_payload()


def main():
    parser = argparse.ArgumentParser(
        description="Replay a synthetic frame trace through the telemetry engine"
    )
    parser.add_argument("--screen", type=str, default="HomeScreen", help="Screen name")
    parser.add_argument("--frames", type=int, default=180, help="Number of frames (default: 180)")
    parser.add_argument("--fps", type=float, default=60.0, help="Nominal frame rate (default: 60)")
    parser.add_argument(
        "--jank-rate",
        type=float,
        default=0.03,
        help="Probability of a jank burst starting at each frame (default: 0.03)",
    )
    parser.add_argument("--burst-length", type=int, default=4, help="Frames per jank burst (default: 4)")
    parser.add_argument("--freeze-at", type=int, default=-1, help="Frame index of a frozen frame")
    parser.add_argument("--manual", action="store_true", help="Use manual TTFD")
    parser.add_argument(
        "--fully-drawn-at",
        type=float,
        default=-1,
        help="Elapsed ms at which the screen reports fully drawn (manual mode)",
    )
    parser.add_argument("--requests", type=int, default=3, help="Synthetic network requests")
    parser.add_argument("--seed", type=int, default=42, help="RNG seed (default: 42)")

    args = parser.parse_args()

    payload = run_simulation(
        screen=args.screen,
        frames=args.frames,
        fps=args.fps,
        jank_rate=args.jank_rate,
        burst_length=args.burst_length,
        freeze_at=args.freeze_at,
        manual=args.manual,
        fully_drawn_at=args.fully_drawn_at,
        requests=args.requests,
        seed=args.seed,
    )

    print(json.dumps(payload, indent=2))
    sys.exit(0 if payload else 1)


if __name__ == "__main__":
    main()
