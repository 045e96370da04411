# Import simulation stages
from .bcrw import simulate_bcrw, circular_mean, draw_wrapped_normal, attraction_weight
from .phases import (
    PhaseDescriptor,
    ComposedTrajectory,
    compose_phases,
    reconstruct_phase_starts,
)
from .noise import jitter_timestamps, drop_fixes, merge_partitions

__all__ = [
    "simulate_bcrw",
    "circular_mean",
    "draw_wrapped_normal",
    "attraction_weight",
    "PhaseDescriptor",
    "ComposedTrajectory",
    "compose_phases",
    "reconstruct_phase_starts",
    "jitter_timestamps",
    "drop_fixes",
    "merge_partitions",
]
