"""
Multi-phase trajectory composition.

A movement season is built from several BCRW runs ("phases"), e.g. an
encamped phase around a resting site followed by a directed migration leg.
Each phase starts where the previous one ended; the hand-off is explicit on
the PhaseDescriptor rather than implied by evaluation order.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple
import logging
import numpy as np

from .bcrw import simulate_bcrw
from ..data.trajectory import Trajectory, TrajectoryPoint
from ..exceptions import InvalidPhaseChain

logger = logging.getLogger(__name__)

DEFAULT_CADENCE = timedelta(hours=4)

# Tolerance for matching a declared start location against the hand-off
LOCATION_ATOL = 1e-9


@dataclass(frozen=True)
class PhaseDescriptor:
    """Parameters for one BCRW run within a composed trajectory"""
    step_count: int
    step_scale: float
    correlation: float  # rho
    bias_target: Tuple[float, float]
    bias: float = 0.0  # b
    decay_exponent: float = 0.0  # c
    start_location: Optional[Tuple[float, float]] = None
    retain_boundary_duplicate: bool = False
    name: str = ""


@dataclass(frozen=True)
class ComposedTrajectory:
    """Unified trajectory plus the information needed to recover phases"""
    trajectory: Trajectory
    phases: Tuple[PhaseDescriptor, ...]  # start locations resolved
    phase_starts: Tuple[int, ...]  # index of each phase's first fix


def _same_location(a: Sequence[float], b: Sequence[float]) -> bool:
    return bool(np.allclose(a, b, rtol=0.0, atol=LOCATION_ATOL))


def compose_phases(
    phases: Sequence[PhaseDescriptor],
    rng: np.random.Generator,
    start_time: Optional[datetime] = None,
    cadence: timedelta = DEFAULT_CADENCE,
    animal_id: str = "animal_1",
) -> ComposedTrajectory:
    """
    Chain BCRW phases into one trajectory on a global fix schedule.

    The last point of every phase but the final one duplicates the next
    phase's first point and is dropped, unless that phase asks to retain it
    (used to emulate duplicated transmissions).

    Args:
        phases: Ordered phase descriptors; only the first must declare a start
        rng: Generator shared by all phases (seeded once per run)
        start_time: Time of the first fix (default Unix epoch, UTC)
        cadence: Interval of the global schedule
        animal_id: Identifier of the composed trajectory

    Returns:
        ComposedTrajectory

    Raises:
        InvalidPhaseChain: empty phase list, first phase without a start, or a
            declared start that differs from the previous phase's end
    """
    if not phases:
        raise InvalidPhaseChain("At least one phase is required")
    if phases[0].start_location is None:
        raise InvalidPhaseChain("The first phase must declare a start location")
    if start_time is None:
        start_time = datetime(1970, 1, 1, tzinfo=timezone.utc)

    resolved: List[PhaseDescriptor] = []
    locations: List[Tuple[float, float]] = []
    phase_starts: List[int] = []
    previous_end: Optional[Tuple[float, float]] = None

    for i, phase in enumerate(phases):
        start = phase.start_location
        if previous_end is not None:
            if start is None:
                start = previous_end
            elif not _same_location(start, previous_end):
                raise InvalidPhaseChain(
                    f"Phase {i} ({phase.name or 'unnamed'}) starts at {start} "
                    f"but phase {i - 1} ended at {previous_end}"
                )
        start = (float(start[0]), float(start[1]))
        phase = replace(phase, start_location=start)
        resolved.append(phase)

        walk = simulate_bcrw(
            n=phase.step_count,
            h=phase.step_scale,
            rho=phase.correlation,
            rng=rng,
            b=phase.bias,
            c=phase.decay_exponent,
            start=start,
            attractor=phase.bias_target,
            animal_id=animal_id,
        )
        previous_end = walk[-1].location

        segment = [p.location for p in walk]
        is_last = i == len(phases) - 1
        if not is_last and not phase.retain_boundary_duplicate:
            segment = segment[:-1]

        phase_starts.append(len(locations))
        locations.extend(segment)
        logger.info(
            f"Phase {i} ({phase.name or 'unnamed'}): {phase.step_count} steps "
            f"toward {phase.bias_target}, {len(segment)} fixes kept"
        )

    points = tuple(
        TrajectoryPoint(x, y, start_time + k * cadence)
        for k, (x, y) in enumerate(locations)
    )
    logger.info(f"Composed {len(phases)} phases into {len(points)} fixes every {cadence}")
    return ComposedTrajectory(
        trajectory=Trajectory(points, animal_id=animal_id),
        phases=tuple(resolved),
        phase_starts=tuple(phase_starts),
    )


def reconstruct_phase_starts(composed: ComposedTrajectory) -> List[Tuple[float, float]]:
    """Location of the first fix of each phase in the unified trajectory."""
    return [composed.trajectory[idx].location for idx in composed.phase_starts]
