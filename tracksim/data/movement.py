"""
Movement metrics and duplicate-fix handling.

Step lengths and turning angles are the observations behavioural HMMs are
fitted to; movement_metrics() produces them in the usual long format (one row
per fix, step to the next fix, turn at the current fix).
"""

from typing import List
import logging
import numpy as np
import pandas as pd

from .trajectory import Trajectory

logger = logging.getLogger(__name__)


def find_duplicate_fixes(trajectory: Trajectory) -> List[int]:
    """
    Indices of fixes that repeat the previous fix.

    A fix is a duplicate if it has the same timestamp as the previous fix, or
    the same position (e.g. a re-sent transmission at a phase boundary).
    """
    duplicates = []
    for i in range(1, len(trajectory)):
        prev, cur = trajectory[i - 1], trajectory[i]
        if cur.timestamp == prev.timestamp or cur.location == prev.location:
            duplicates.append(i)
    return duplicates


def drop_duplicate_fixes(trajectory: Trajectory) -> Trajectory:
    """Remove fixes flagged by find_duplicate_fixes, keeping the first of each run."""
    duplicates = set(find_duplicate_fixes(trajectory))
    if duplicates:
        logger.info(f"Removing {len(duplicates)} duplicate fixes")
    return trajectory.select(i for i in range(len(trajectory)) if i not in duplicates)


def movement_metrics(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Add step length and turning angle columns.

    Args:
        frame: DataFrame with x and y columns in path order (e.g. the output
            of a GapInterpolator)

    Returns:
        Copy of frame with 'step' (distance to the next fix, NaN for the last)
        and 'angle' (turn at this fix in (-pi, pi], NaN at both ends and
        where either adjacent step has zero length)
    """
    out = frame.copy()
    n = len(out)
    step = np.full(n, np.nan)
    angle = np.full(n, np.nan)

    if n >= 2:
        xy = out[["x", "y"]].to_numpy(dtype=float)
        d = np.diff(xy, axis=0)
        lengths = np.hypot(d[:, 0], d[:, 1])
        step[:-1] = lengths

        if n >= 3:
            headings = np.arctan2(d[:, 1], d[:, 0])
            turns = np.angle(np.exp(1j * np.diff(headings)))
            stationary = (lengths[:-1] == 0) | (lengths[1:] == 0)
            turns[stationary] = np.nan
            angle[1:-1] = turns

    out["step"] = step
    out["angle"] = angle
    return out
