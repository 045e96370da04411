"""
Tests for the biased correlated random walk simulator.
"""

import math
import pytest
import numpy as np
from datetime import timedelta
from unittest.mock import MagicMock

from tracksim.simulation.bcrw import (
    simulate_bcrw,
    circular_mean,
    draw_wrapped_normal,
    attraction_weight,
    DEFAULT_START_TIME,
)
from tracksim.exceptions import DegenerateParameters, TrackSimError


class TestCircularHelpers:
    """Test circular statistics helpers."""

    def test_circular_mean_of_two_angles(self):
        """Mean of 0 and pi/2 is pi/4."""
        assert circular_mean([0.0, math.pi / 2]) == pytest.approx(math.pi / 4)

    def test_circular_mean_weights(self):
        """Zero weight ignores an angle entirely."""
        assert circular_mean([1.0, -2.0], [1.0, 0.0]) == pytest.approx(1.0)

    def test_circular_mean_wraps_across_pi(self):
        """Angles either side of +/-pi average to pi, not 0."""
        mean = circular_mean([math.pi - 0.1, -math.pi + 0.1])
        assert abs(mean) == pytest.approx(math.pi)

    def test_wrapped_normal_rho_one_is_deterministic(self, rng):
        """rho = 1 returns the mean heading exactly."""
        assert draw_wrapped_normal(0.7, 1.0, rng) == 0.7

    def test_wrapped_normal_in_range(self, rng):
        """Draws are wrapped to [-pi, pi)."""
        for rho in [0.0, 0.2, 0.8]:
            for _ in range(200):
                theta = draw_wrapped_normal(3.0, rho, rng)
                assert -math.pi <= theta < math.pi

    def test_attraction_weight(self):
        assert attraction_weight(0.0, 2.0, 1.0) == 0.0
        assert attraction_weight(10.0, 0.0, 1.0) == 0.0
        assert attraction_weight(1.0, 0.5, 3.0) == pytest.approx(math.tanh(0.5))

    def test_attraction_weight_saturates_for_huge_exponent(self):
        """delta**c beyond float range saturates instead of overflowing."""
        assert attraction_weight(1000.0, 1.0, 200.0) == 1.0
        assert attraction_weight(1000.0, -1.0, 200.0) == -1.0
        assert attraction_weight(1e-3, 1.0, -200.0) == 1.0


class TestSimulateBCRW:
    """Test simulate_bcrw."""

    def test_reference_walk(self, rng):
        """n=100, h=2, rho=0.8 from (0, 0) gives 101 fixes one minute apart."""
        walk = simulate_bcrw(n=100, h=2, rho=0.8, rng=rng,
                             start=(0.0, 0.0), attractor=(0.0, 0.0))

        assert len(walk) == 101
        assert walk[0].location == (0.0, 0.0)
        assert len(set(walk.timestamps)) == 101
        assert walk.is_strictly_increasing
        assert walk[0].timestamp == DEFAULT_START_TIME
        assert walk[100].timestamp - walk[0].timestamp == timedelta(minutes=100)

    def test_zero_steps(self, rng):
        """n = 0 yields the start point only."""
        walk = simulate_bcrw(n=0, h=1.0, rho=0.5, rng=rng, start=(3.0, 4.0))
        assert len(walk) == 1
        assert walk[0].location == (3.0, 4.0)

    def test_uncorrelated_walk(self, rng):
        """rho = 0 still produces a valid walk."""
        walk = simulate_bcrw(n=50, h=1.0, rho=0.0, rng=rng)
        assert len(walk) == 51
        assert np.all(np.isfinite(walk.locations))

    def test_reproducible_with_same_seed(self):
        """Same seed and parameters reproduce the same path."""
        a = simulate_bcrw(n=30, h=1.5, rho=0.6, rng=np.random.default_rng(7), b=0.3)
        b = simulate_bcrw(n=30, h=1.5, rho=0.6, rng=np.random.default_rng(7), b=0.3)
        np.testing.assert_array_equal(a.locations, b.locations)

    def test_different_seeds_differ(self):
        """Different seeds give different paths."""
        a = simulate_bcrw(n=30, h=1.5, rho=0.6, rng=np.random.default_rng(1))
        b = simulate_bcrw(n=30, h=1.5, rho=0.6, rng=np.random.default_rng(2))
        assert not np.allclose(a.locations, b.locations)

    @pytest.mark.parametrize("b", [1.0, 5.0])
    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_deterministic_bias_converges(self, b, seed):
        """With rho = 1 and c = 0 the walk closes in on a distant attractor every step."""
        attractor = np.array([1000.0, 0.0])
        walk = simulate_bcrw(n=100, h=1.0, rho=1.0, rng=np.random.default_rng(seed),
                             b=b, c=0.0, start=(0.0, 0.0), attractor=tuple(attractor))

        distances = np.linalg.norm(walk.locations - attractor, axis=1)
        assert np.all(np.diff(distances) < 0)
        assert distances[-1] < distances[0]

    def test_walk_with_more_steps_gets_closer(self):
        """Distance to the attractor shrinks as step count grows."""
        attractor = np.array([500.0, 500.0])
        walk = simulate_bcrw(n=200, h=2.0, rho=1.0, rng=np.random.default_rng(3),
                             b=2.0, c=0.0, start=(0.0, 0.0), attractor=tuple(attractor))
        distances = np.linalg.norm(walk.locations - attractor, axis=1)
        assert distances[200] < distances[100] < distances[50] < distances[0]

    def test_huge_decay_exponent(self, rng):
        """A large finite c is a valid walk: full pull while far away."""
        walk = simulate_bcrw(n=5, h=1.0, rho=1.0, rng=rng, b=1.0, c=200.0,
                             start=(1000.0, 0.0), attractor=(0.0, 0.0))
        assert len(walk) == 6
        assert np.isfinite(walk.locations).all()
        assert np.all(np.diff(walk.locations[:, 0]) < 0)

    def test_custom_clock(self, rng, make_track):
        """start_time and step_interval set the walk's own timestamps."""
        start = make_track(1)[0].timestamp
        walk = simulate_bcrw(n=3, h=1.0, rho=0.5, rng=rng,
                             start_time=start, step_interval=timedelta(seconds=30))
        assert walk.timestamps == [start + timedelta(seconds=30 * i) for i in range(4)]


class TestDegenerateParameters:
    """Test parameter validation."""

    @pytest.mark.parametrize("kwargs", [
        {"n": -1, "h": 1.0, "rho": 0.5},
        {"n": 10, "h": 0.0, "rho": 0.5},
        {"n": 10, "h": -2.0, "rho": 0.5},
        {"n": 10, "h": 1.0, "rho": 1.5},
        {"n": 10, "h": 1.0, "rho": -0.1},
        {"n": 10, "h": float("nan"), "rho": 0.5},
        {"n": 10, "h": 1.0, "rho": 0.5, "b": float("inf")},
    ])
    def test_rejected(self, kwargs):
        """Invalid parameters raise before any random draw."""
        rng = MagicMock()
        with pytest.raises(DegenerateParameters):
            simulate_bcrw(rng=rng, **kwargs)
        assert not rng.method_calls

    def test_error_hierarchy(self):
        """DegenerateParameters is both a TrackSimError and a ValueError."""
        assert issubclass(DegenerateParameters, TrackSimError)
        assert issubclass(DegenerateParameters, ValueError)
