"""
Shared pytest fixtures for track simulation tests.

Provides hand-built regular tracks and seeded random generators.
"""

import pytest
import numpy as np
from datetime import datetime, timedelta, timezone

from tracksim.data.trajectory import Trajectory, TrajectoryPoint


START = datetime(2019, 5, 1, tzinfo=timezone.utc)
CADENCE = timedelta(hours=4)


def build_track(n, cadence=CADENCE, start=START, animal_id="test_animal"):
    """Straight track along x (x = 10 * i) with one fix per cadence."""
    return Trajectory(
        tuple(TrajectoryPoint(10.0 * i, 0.0, start + i * cadence) for i in range(n)),
        animal_id=animal_id,
    )


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def rng():
    """Seeded generator so every test is reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture
def regular_track():
    """353 fixes every 4 hours (size of the reference scenario)."""
    return build_track(353)


@pytest.fixture
def short_track():
    """10 fixes every 4 hours."""
    return build_track(10)


@pytest.fixture
def make_track():
    """Factory for custom regular tracks."""
    return build_track
