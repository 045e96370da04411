"""
Gap marking and interpolation hand-off.

After regularization a track sits on the cadence grid but still has holes
where fixes failed. mark_missing_slots() makes those holes explicit (one row
per cadence slot, NaN coordinates where nothing was observed) which is the
input continuous-time movement models expect. Any such model can be plugged
in behind GapInterpolator; LinearGapInterpolator is the built-in fallback.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional
import logging
import pandas as pd

from .regularization import Duration, to_timedelta
from .trajectory import Trajectory, datetime_series

logger = logging.getLogger(__name__)


def mark_missing_slots(trajectory: Trajectory, cadence: Duration) -> pd.DataFrame:
    """
    Expand a regularized track to one row per cadence slot.

    Args:
        trajectory: Track whose fix times lie on a cadence grid
        cadence: Slot spacing

    Returns:
        DataFrame with columns ID, timestamp, x, y, observed. Slots without a
        fix have NaN x/y and observed=False.

    Raises:
        ValueError: duplicate fix times or fixes not aligned to the cadence
    """
    cadence = to_timedelta(cadence)
    if len(trajectory) == 0:
        return pd.DataFrame(columns=["ID", "timestamp", "x", "y", "observed"])

    times = trajectory.timestamps
    if len(set(times)) != len(times):
        raise ValueError("Trajectory has duplicate fix times; remove duplicates first")

    first: datetime = min(times)
    last: datetime = max(times)
    misaligned = [t for t in times if (t - first) % cadence != timedelta(0)]
    if misaligned:
        raise ValueError(
            f"{len(misaligned)} fixes are not on the {cadence} grid; regularize first"
        )

    n_slots = (last - first) // cadence + 1
    slots = pd.DataFrame({
        "timestamp": datetime_series(first + k * cadence for k in range(n_slots))
    })

    observed = trajectory.to_dataframe().drop(columns=["ID"])
    frame = slots.merge(observed, on="timestamp", how="left")
    frame["observed"] = frame["x"].notna()
    frame.insert(0, "ID", trajectory.animal_id)

    n_missing = int((~frame["observed"]).sum())
    logger.info(f"Marked {n_missing} missing of {n_slots} slots at {cadence} cadence")
    return frame


class GapInterpolator(ABC):
    """Base class for anything that fills missing cadence slots"""

    @abstractmethod
    def interpolate(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Return the frame with x/y estimated at every unobserved slot.

        Args:
            frame: Output of mark_missing_slots()

        Returns:
            Frame with the same rows and no missing coordinates
        """
        pass

    def fill(self, trajectory: Trajectory, cadence: Duration) -> pd.DataFrame:
        """Mark gaps, interpolate them and check nothing is left missing."""
        return self.fill_frame(mark_missing_slots(trajectory, cadence))

    def fill_frame(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Interpolate an already gap-marked frame and check the result."""
        filled = self.interpolate(frame)
        if len(filled) != len(frame):
            raise ValueError(
                f"{type(self).__name__} returned {len(filled)} rows for {len(frame)} slots"
            )
        if filled[["x", "y"]].isna().any().any():
            raise ValueError(f"{type(self).__name__} left unfilled slots")
        return filled


class LinearGapInterpolator(GapInterpolator):
    """Straight-line interpolation in time between neighbouring fixes"""

    def interpolate(self, frame: pd.DataFrame) -> pd.DataFrame:
        filled = frame.set_index("timestamp")
        filled[["x", "y"]] = filled[["x", "y"]].interpolate(method="time")
        return filled.reset_index()[frame.columns]
