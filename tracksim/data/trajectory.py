"""
Trajectory value types.

A Trajectory is an ordered, immutable sequence of fixes for one individual.
Order is the visitation order and defines the path; every pipeline stage
returns a new Trajectory instead of editing one in place.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import LineString


def datetime_series(values: Iterable[datetime]) -> pd.Series:
    """datetime64 Series from python datetimes (one dtype for every frame we build)."""
    return pd.to_datetime(pd.Series(list(values), dtype="object"))


@dataclass(frozen=True)
class TrajectoryPoint:
    """Single fix: planar position plus time"""
    x: float
    y: float
    timestamp: datetime

    @property
    def location(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Trajectory:
    """Ordered fixes for one animal"""
    points: Tuple[TrajectoryPoint, ...]
    animal_id: str = "animal_1"

    def __post_init__(self):
        # Accept any iterable but store a tuple so the value stays immutable
        if not isinstance(self.points, tuple):
            object.__setattr__(self, "points", tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TrajectoryPoint]:
        return iter(self.points)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return Trajectory(self.points[idx], animal_id=self.animal_id)
        return self.points[idx]

    @property
    def timestamps(self) -> List[datetime]:
        return [p.timestamp for p in self.points]

    @property
    def locations(self) -> np.ndarray:
        """(n, 2) array of x/y coordinates"""
        if not self.points:
            return np.empty((0, 2))
        return np.array([[p.x, p.y] for p in self.points], dtype=float)

    @property
    def is_strictly_increasing(self) -> bool:
        ts = self.timestamps
        return all(a < b for a, b in zip(ts, ts[1:]))

    def with_timestamps(self, timestamps: Sequence[datetime]) -> "Trajectory":
        """Return a copy with the same positions and new times."""
        if len(timestamps) != len(self.points):
            raise ValueError(
                f"Expected {len(self.points)} timestamps, got {len(timestamps)}"
            )
        return Trajectory(
            tuple(replace(p, timestamp=t) for p, t in zip(self.points, timestamps)),
            animal_id=self.animal_id,
        )

    def select(self, indices: Iterable[int]) -> "Trajectory":
        """Subsequence at the given indices, in the order given."""
        return Trajectory(
            tuple(self.points[i] for i in indices), animal_id=self.animal_id
        )

    def fix_intervals(self) -> pd.Series:
        """Elapsed time between consecutive fixes."""
        ts = datetime_series(self.timestamps)
        return ts.diff().iloc[1:].reset_index(drop=True)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tabular form used by plotting and the interpolation/HMM hand-off.

        Returns:
            DataFrame with columns ID, x, y, timestamp (one row per fix)
        """
        return pd.DataFrame({
            "ID": [self.animal_id] * len(self.points),
            "x": [p.x for p in self.points],
            "y": [p.y for p in self.points],
            "timestamp": datetime_series(self.timestamps),
        })

    def to_geodataframe(self, crs: Optional[str] = None) -> gpd.GeoDataFrame:
        """Point GeoDataFrame of the fixes (x/y taken as projected coords)."""
        df = self.to_dataframe()
        return gpd.GeoDataFrame(
            df,
            geometry=gpd.points_from_xy(df.x, df.y),
            crs=crs,
        )

    def to_linestring(self) -> LineString:
        """Path as a single line; needs at least two fixes."""
        if len(self.points) < 2:
            raise ValueError("A path needs at least two fixes")
        return LineString([p.location for p in self.points])

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, animal_id: Optional[str] = None) -> "Trajectory":
        """Build a trajectory from a frame with x, y and timestamp columns."""
        missing = {"x", "y", "timestamp"} - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns: {sorted(missing)}")
        if animal_id is None:
            animal_id = str(df["ID"].iloc[0]) if "ID" in df.columns and len(df) else "animal_1"
        times = pd.to_datetime(df["timestamp"])
        points = tuple(
            TrajectoryPoint(float(x), float(y), t.to_pydatetime())
            for x, y, t in zip(df["x"], df["y"], times)
        )
        return cls(points, animal_id=animal_id)
