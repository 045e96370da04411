"""
Collar-style degradation of a simulated track.

Real GPS collars never fire exactly on schedule and some fixes fail. These
helpers add bounded integer-second jitter to fix times and remove a random
subset of fixes. Both return new trajectories; the input is left untouched.
"""

from datetime import timedelta
from typing import Tuple
import logging
import math
import numpy as np

from ..data.trajectory import Trajectory

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def jitter_timestamps(
    trajectory: Trajectory,
    max_jitter_seconds: int,
    rng: np.random.Generator,
) -> Trajectory:
    """
    Perturb every fix time by an independent integer offset in [-j, +j] seconds.

    The jitter bound should be below half the nominal spacing so fixes keep
    their order. This is not enforced; a warning is logged if the result is
    no longer strictly increasing.

    Args:
        trajectory: Track with nominal fix times
        max_jitter_seconds: Jitter bound j (>= 0)
        rng: numpy random Generator

    Returns:
        New trajectory with jittered timestamps
    """
    if max_jitter_seconds < 0:
        raise ValueError(f"Jitter bound must be >= 0, got {max_jitter_seconds}")

    j = int(max_jitter_seconds)
    offsets = rng.integers(-j, j + 1, size=len(trajectory))
    jittered = trajectory.with_timestamps([
        t + timedelta(seconds=int(s))
        for t, s in zip(trajectory.timestamps, offsets)
    ])

    if trajectory.is_strictly_increasing and not jittered.is_strictly_increasing:
        logger.warning(
            f"Jitter of +/-{j}s reordered fixes; bound is too large for the fix spacing"
        )
    logger.info(f"Jittered {len(trajectory)} fix times by up to +/-{j}s")
    return jittered


def drop_fixes(
    trajectory: Trajectory,
    drop_fraction: float,
    rng: np.random.Generator,
) -> Tuple[Trajectory, Trajectory]:
    """
    Split a track into kept and dropped fixes.

    round_half_up(drop_fraction * n) fixes are selected in a single draw
    without replacement; the rest are kept. Both parts preserve the original
    order and together partition the input.

    Args:
        trajectory: Track to thin
        drop_fraction: Fraction of fixes to drop, in [0, 1]
        rng: numpy random Generator

    Returns:
        (kept, dropped) trajectories
    """
    if not (0.0 <= drop_fraction <= 1.0):
        raise ValueError(f"Drop fraction must lie in [0, 1], got {drop_fraction}")

    n = len(trajectory)
    n_drop = min(round_half_up(drop_fraction * n), n)
    dropped_idx = np.sort(rng.choice(n, size=n_drop, replace=False)) if n_drop else np.array([], dtype=int)

    mask = np.zeros(n, dtype=bool)
    mask[dropped_idx] = True
    kept_idx = np.flatnonzero(~mask)

    kept = trajectory.select(int(i) for i in kept_idx)
    dropped = trajectory.select(int(i) for i in dropped_idx)
    logger.info(f"Dropped {len(dropped)} of {n} fixes ({drop_fraction:.1%})")
    return kept, dropped


def merge_partitions(kept: Trajectory, dropped: Trajectory) -> Trajectory:
    """Recombine kept and dropped fixes into one time-ordered trajectory."""
    points = sorted(kept.points + dropped.points, key=lambda p: p.timestamp)
    return Trajectory(tuple(points), animal_id=kept.animal_id)
