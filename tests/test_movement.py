"""
Tests for movement metrics and duplicate-fix handling.
"""

import math
import pytest
import numpy as np
import pandas as pd

from tracksim.data.movement import (
    movement_metrics,
    find_duplicate_fixes,
    drop_duplicate_fixes,
)
from tracksim.data.trajectory import Trajectory, TrajectoryPoint


def frame_from(xy):
    return pd.DataFrame({"x": [p[0] for p in xy], "y": [p[1] for p in xy]})


class TestMovementMetrics:
    """Test step length / turning angle computation."""

    def test_square_path(self):
        metrics = movement_metrics(frame_from([(0, 0), (1, 0), (1, 1), (0, 1)]))

        np.testing.assert_allclose(metrics["step"].to_numpy()[:3], [1.0, 1.0, 1.0])
        assert np.isnan(metrics["step"].iloc[-1])
        assert np.isnan(metrics["angle"].iloc[0])
        assert np.isnan(metrics["angle"].iloc[-1])
        np.testing.assert_allclose(metrics["angle"].to_numpy()[1:3], [math.pi / 2, math.pi / 2])

    def test_right_turn_is_negative(self):
        metrics = movement_metrics(frame_from([(0, 0), (1, 0), (1, -1)]))
        assert metrics["angle"].iloc[1] == pytest.approx(-math.pi / 2)

    def test_reversal(self):
        metrics = movement_metrics(frame_from([(0, 0), (1, 0), (0, 0)]))
        assert abs(metrics["angle"].iloc[1]) == pytest.approx(math.pi)

    def test_stationary_step_has_no_angle(self):
        metrics = movement_metrics(frame_from([(0, 0), (1, 0), (1, 0), (2, 0)]))
        assert metrics["step"].iloc[1] == 0.0
        assert metrics["angle"].iloc[1:3].isna().all()

    def test_straight_line(self, short_track):
        metrics = movement_metrics(short_track.to_dataframe())
        np.testing.assert_allclose(metrics["step"].to_numpy()[:-1], 10.0)
        np.testing.assert_allclose(metrics["angle"].to_numpy()[1:-1], 0.0)

    def test_short_frames(self):
        single = movement_metrics(frame_from([(0, 0)]))
        assert single["step"].isna().all() and single["angle"].isna().all()

        pair = movement_metrics(frame_from([(0, 0), (3, 4)]))
        assert pair["step"].iloc[0] == pytest.approx(5.0)
        assert pair["angle"].isna().all()

    def test_input_not_modified(self):
        frame = frame_from([(0, 0), (1, 0), (1, 1)])
        movement_metrics(frame)
        assert list(frame.columns) == ["x", "y"]


class TestDuplicateFixes:
    """Test duplicate fix detection."""

    def test_same_position_and_same_time(self, short_track):
        points = list(short_track.points)
        p = points[4]
        points.insert(5, TrajectoryPoint(p.x, p.y, p.timestamp + pd.Timedelta(hours=2).to_pytimedelta()))
        q = points[7]
        points.insert(8, TrajectoryPoint(q.x + 1.0, q.y, q.timestamp))
        track = Trajectory(tuple(points))

        assert find_duplicate_fixes(track) == [5, 8]
        cleaned = drop_duplicate_fixes(track)
        assert len(cleaned) == len(short_track)
        assert cleaned == Trajectory(short_track.points)

    def test_no_duplicates(self, short_track):
        assert find_duplicate_fixes(short_track) == []
        assert drop_duplicate_fixes(short_track) == short_track
