"""
Biased correlated random walk (BCRW) simulator.

Each step's heading is a weighted circular mean of the previous heading and the
bearing to an attraction point, perturbed by wrapped-normal noise. The weight
on the attractor is beta = tanh(b * delta**c), where delta is the current
distance to the attractor:

    - b = 0 (or beta ~ 0): plain correlated random walk
    - rho = 0: headings have no memory, uniform turning
    - rho = 1: heading equals the expected heading exactly

Step lengths are chi-distributed (2 degrees of freedom) scaled by h.

All randomness comes from an explicit numpy Generator so runs are isolated and
reproducible for a given seed.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple
import logging
import math
import numpy as np

from ..data.trajectory import Trajectory, TrajectoryPoint
from ..exceptions import DegenerateParameters

logger = logging.getLogger(__name__)

# Simulated clock for a single walk: one fix per minute from the Unix epoch
DEFAULT_START_TIME = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_STEP_INTERVAL = timedelta(minutes=1)


def circular_mean(angles: Sequence[float], weights: Optional[Sequence[float]] = None) -> float:
    """
    Weighted circular mean: atan2(sum w*sin(theta), sum w*cos(theta)).

    Args:
        angles: Angles in radians
        weights: Non-negative weights (default: equal weights)

    Returns:
        Mean direction in radians, in [-pi, pi]
    """
    angles = np.asarray(angles, dtype=float)
    if weights is None:
        weights = np.ones_like(angles)
    weights = np.asarray(weights, dtype=float)
    return float(np.arctan2(np.sum(weights * np.sin(angles)),
                            np.sum(weights * np.cos(angles))))


def draw_wrapped_normal(mu: float, rho: float, rng: np.random.Generator) -> float:
    """
    Draw one angle from a wrapped normal with mean mu and mean resultant length rho.

    The underlying normal has sd = sqrt(-2 ln rho). rho = 1 returns mu itself,
    rho = 0 is the uniform circular distribution.
    """
    if rho >= 1.0:
        return float(mu)
    if rho <= 0.0:
        return float(rng.uniform(-math.pi, math.pi))
    sd = math.sqrt(-2.0 * math.log(rho))
    theta = rng.normal(mu, sd)
    # Wrap to [-pi, pi)
    return float((theta + math.pi) % (2 * math.pi) - math.pi)


def attraction_weight(delta: float, b: float, c: float) -> float:
    """beta = tanh(b * delta**c); 0 on the attractor, where there is no bearing."""
    if delta <= 0 or b == 0:
        return 0.0
    try:
        strength = b * delta ** c
    except OverflowError:
        # tanh has saturated long before delta**c leaves float range
        return math.copysign(1.0, b)
    return math.tanh(strength)


def validate_walk_parameters(n: int, h: float, rho: float, b: float = 0.0, c: float = 0.0):
    """Raise DegenerateParameters if the walk cannot be simulated."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise DegenerateParameters(f"Step count must be an integer, got {n!r}")
    if n < 0:
        raise DegenerateParameters(f"Step count must be >= 0, got {n}")
    if not (h > 0) or not math.isfinite(h):
        raise DegenerateParameters(f"Step scale must be positive and finite, got {h}")
    if not (0.0 <= rho <= 1.0):
        raise DegenerateParameters(f"Correlation rho must lie in [0, 1], got {rho}")
    if not math.isfinite(b) or not math.isfinite(c):
        raise DegenerateParameters(f"Bias parameters must be finite, got b={b}, c={c}")


def simulate_bcrw(
    n: int,
    h: float,
    rho: float,
    rng: np.random.Generator,
    b: float = 0.0,
    c: float = 0.0,
    start: Tuple[float, float] = (0.0, 0.0),
    attractor: Tuple[float, float] = (0.0, 0.0),
    start_time: Optional[datetime] = None,
    step_interval: timedelta = DEFAULT_STEP_INTERVAL,
    animal_id: str = "animal_1",
) -> Trajectory:
    """
    Simulate a biased correlated random walk.

    Args:
        n: Number of steps (the walk has n + 1 positions, including start)
        h: Step-length scale
        rho: Heading correlation in [0, 1]
        rng: numpy random Generator driving every draw
        b: Bias magnitude toward the attractor
        c: Distance-decay exponent of the bias
        start: Start location (x, y)
        attractor: Attraction location (x, y)
        start_time: Timestamp of the first position (default Unix epoch, UTC)
        step_interval: Time between positions
        animal_id: Identifier carried by the returned trajectory

    Returns:
        Trajectory with n + 1 regularly timestamped points

    Raises:
        DegenerateParameters: n < 0, h <= 0 or rho outside [0, 1]
    """
    validate_walk_parameters(n, h, rho, b, c)
    if start_time is None:
        start_time = DEFAULT_START_TIME

    x, y = float(start[0]), float(start[1])
    ax, ay = float(attractor[0]), float(attractor[1])
    xs = [x]
    ys = [y]

    heading = rng.uniform(-math.pi, math.pi)

    for _ in range(n):
        dx, dy = ax - x, ay - y
        delta = math.hypot(dx, dy)
        psi = math.atan2(dy, dx)
        beta = attraction_weight(delta, b, c)

        expected = circular_mean([heading, psi], [1.0 - beta, beta])
        heading = draw_wrapped_normal(expected, rho, rng)
        step = h * math.sqrt(rng.chisquare(2))

        x += step * math.cos(heading)
        y += step * math.sin(heading)
        xs.append(x)
        ys.append(y)

    points = tuple(
        TrajectoryPoint(px, py, start_time + i * step_interval)
        for i, (px, py) in enumerate(zip(xs, ys))
    )
    logger.debug(
        f"Simulated BCRW: n={n}, h={h}, rho={rho}, b={b}, c={c}, "
        f"start={start}, end=({x:.2f}, {y:.2f})"
    )
    return Trajectory(points, animal_id=animal_id)
