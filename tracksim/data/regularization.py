"""
Fix-time regularization.

Collar fixes are scheduled on a fixed cadence (e.g. every 4 hours) but are
recorded a little early or late. The regularizer snaps each fix to the nearest
instant of a grid anchored at a fixed origin, flags fixes that drifted further
than the allowed tolerance, and tabulates the elapsed time between the
resulting fixes.

Rounding is one duration computation against the grid:

    q, r = divmod(t - origin, unit)
    rounded = origin + (q + (r >= unit / 2)) * unit

so hour and day carries (e.g. 23:31 -> 00:00 next day) need no special cases.

Point-level problems are collected and returned with the result, never raised
while processing; use RegularizationResult.raise_for_drift() to turn them into
an error explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union
import logging
import numbers
import numpy as np
import pandas as pd

from .trajectory import Trajectory
from ..exceptions import DriftToleranceError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)

Duration = Union[timedelta, str, pd.Timedelta, int, float]


def to_timedelta(value: Duration) -> timedelta:
    """
    Parse '4h', '15min', a pandas Timedelta, a timedelta or a number of
    seconds into a timedelta.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a duration: {value!r}")
    if isinstance(value, timedelta) and not isinstance(value, pd.Timedelta):
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, np.timedelta64):
        # Bare numbers are seconds, like max_jitter_seconds
        return pd.Timedelta(float(value), unit="s").to_pytimedelta()
    return pd.Timedelta(value).to_pytimedelta()


def _grid_origin(ts: datetime, origin: Optional[datetime]) -> datetime:
    # Match the timestamp's awareness so naive and UTC tracks both work
    if origin is None:
        return EPOCH.replace(tzinfo=ts.tzinfo)
    return origin


def round_to_grid(ts: datetime, unit: timedelta, origin: Optional[datetime] = None) -> datetime:
    """
    Round a timestamp to the nearest grid instant, halves rounding up.

    Args:
        ts: Timestamp to round
        unit: Grid spacing
        origin: Grid anchor (default Unix epoch in the timestamp's timezone)

    Returns:
        Rounded timestamp
    """
    origin = _grid_origin(ts, origin)
    q, r = divmod(ts - origin, unit)
    if r * 2 >= unit:
        q += 1
    return origin + q * unit


def is_on_grid(ts: datetime, unit: timedelta, origin: Optional[datetime] = None) -> bool:
    origin = _grid_origin(ts, origin)
    return (ts - origin) % unit == timedelta(0)


@dataclass(frozen=True)
class DriftExceeded:
    """A fix whose time is further than the tolerance from its grid slot"""
    index: int
    observed: datetime
    rounded: datetime
    drift: timedelta  # observed - rounded


@dataclass(frozen=True)
class OffSchedule:
    """A fix that rounded onto an instant outside the cadence schedule"""
    index: int
    observed: datetime
    rounded: datetime


@dataclass(frozen=True)
class RegularizationResult:
    """Regularized track plus per-point anomalies and interval diagnostics"""
    trajectory: Trajectory
    drift_exceeded: List[DriftExceeded] = field(default_factory=list)
    off_schedule: List[OffSchedule] = field(default_factory=list)
    fix_intervals: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))

    @property
    def drift_count(self) -> int:
        return len(self.drift_exceeded)

    @property
    def max_drift(self) -> timedelta:
        if not self.drift_exceeded:
            return timedelta(0)
        return max(abs(a.drift) for a in self.drift_exceeded)

    @property
    def ok(self) -> bool:
        return not self.drift_exceeded and not self.off_schedule

    def summary(self) -> Dict:
        """
        Report how many fixes drifted, by how much, and the fix-rate table.

        Returns:
            Dictionary with n_fixes, n_drift_exceeded, max_drift, n_off_schedule
            and intervals ({interval: count})
        """
        report = {
            "n_fixes": len(self.trajectory),
            "n_drift_exceeded": self.drift_count,
            "max_drift": self.max_drift,
            "n_off_schedule": len(self.off_schedule),
            "intervals": {k: int(v) for k, v in self.fix_intervals.items()},
        }
        logger.info(
            f"Regularized {report['n_fixes']} fixes: "
            f"{report['n_drift_exceeded']} beyond tolerance "
            f"(max drift {report['max_drift']}), "
            f"{report['n_off_schedule']} off schedule"
        )
        for interval, count in report["intervals"].items():
            logger.info(f"  interval {interval}: {count}")
        return report

    def raise_for_drift(self):
        """Raise DriftToleranceError if any fix exceeded the tolerance."""
        if self.drift_exceeded:
            raise DriftToleranceError(self.drift_exceeded)


def fix_interval_table(trajectory: Trajectory) -> pd.Series:
    """Frequency table of elapsed time between consecutive fixes."""
    intervals = trajectory.fix_intervals()
    table = intervals.value_counts().sort_index()
    table.index.name = "interval"
    table.name = "count"
    return table


class TimeRegularizer:
    """
    Snap fix times to a cadence grid and audit the drift.

    Usage:
        regularizer = TimeRegularizer(cadence="4h", tolerance="15min")
        result = regularizer.regularize(track)
        result.summary()
    """

    def __init__(
        self,
        cadence: Duration,
        tolerance: Duration,
        rounding_unit: Optional[Duration] = None,
        origin: Optional[datetime] = None,
    ):
        """
        Initialize regularizer.

        Args:
            cadence: Scheduled interval between fixes
            tolerance: Largest allowed |observed - rounded|
            rounding_unit: Grid used for rounding (default: the cadence). A finer
                unit, e.g. 1 hour on a 4-hour schedule, rounds to that unit and
                reports fixes landing off the cadence schedule.
            origin: Grid anchor (default Unix epoch)
        """
        self.cadence = to_timedelta(cadence)
        self.tolerance = to_timedelta(tolerance)
        self.rounding_unit = to_timedelta(rounding_unit) if rounding_unit is not None else self.cadence
        self.origin = origin

        if self.cadence <= timedelta(0):
            raise ValueError(f"Cadence must be positive, got {self.cadence}")
        if self.rounding_unit <= timedelta(0):
            raise ValueError(f"Rounding unit must be positive, got {self.rounding_unit}")
        if self.tolerance < timedelta(0):
            raise ValueError(f"Tolerance must be >= 0, got {self.tolerance}")

    def round_timestamp(self, ts: datetime) -> datetime:
        return round_to_grid(ts, self.rounding_unit, self.origin)

    def regularize(self, trajectory: Trajectory) -> RegularizationResult:
        """
        Round every fix time and collect per-point anomalies.

        Args:
            trajectory: Track with observed fix times

        Returns:
            RegularizationResult; anomalies never abort processing
        """
        check_schedule = self.rounding_unit != self.cadence
        rounded_times = []
        drift_exceeded = []
        off_schedule = []

        for i, point in enumerate(trajectory):
            rounded = self.round_timestamp(point.timestamp)
            drift = point.timestamp - rounded
            if abs(drift) > self.tolerance:
                drift_exceeded.append(DriftExceeded(i, point.timestamp, rounded, drift))
            if check_schedule and not is_on_grid(rounded, self.cadence, self.origin):
                off_schedule.append(OffSchedule(i, point.timestamp, rounded))
            rounded_times.append(rounded)

        regular = trajectory.with_timestamps(rounded_times)

        if drift_exceeded:
            logger.warning(
                f"{len(drift_exceeded)} of {len(trajectory)} fixes drifted more than "
                f"{self.tolerance} from the {self.rounding_unit} grid"
            )
        if off_schedule:
            logger.warning(f"{len(off_schedule)} fixes rounded off the {self.cadence} schedule")
        if len(regular) > 1 and not regular.is_strictly_increasing:
            logger.warning("Regularized fix times are not strictly increasing (duplicate slots)")

        return RegularizationResult(
            trajectory=regular,
            drift_exceeded=drift_exceeded,
            off_schedule=off_schedule,
            fix_intervals=fix_interval_table(regular),
        )

    def on_schedule(self, result: RegularizationResult) -> Trajectory:
        """
        Place a regularized track on the cadence schedule.

        Fixes reported as OffSchedule are moved to their nearest cadence slot.
        A moved fix whose slot is already taken (by an on-schedule fix or an
        earlier moved one) is left out. The anomalies on `result` are left as
        reported.

        Args:
            result: Output of regularize()

        Returns:
            Trajectory ready for mark_missing_slots()
        """
        if not result.off_schedule:
            return result.trajectory

        moved = {a.index for a in result.off_schedule}
        taken = {p.timestamp for i, p in enumerate(result.trajectory) if i not in moved}
        keep = []
        times = []
        for i, point in enumerate(result.trajectory):
            ts = point.timestamp
            if i in moved:
                ts = round_to_grid(ts, self.cadence, self.origin)
                if ts in taken:
                    continue
                taken.add(ts)
            keep.append(i)
            times.append(ts)

        scheduled = result.trajectory.select(keep).with_timestamps(times)
        n_collided = len(result.trajectory) - len(scheduled)
        logger.info(
            f"Moved {len(moved)} off-schedule fixes to the {self.cadence} schedule"
            + (f" ({n_collided} left out, slot already taken)" if n_collided else "")
        )
        return scheduled
