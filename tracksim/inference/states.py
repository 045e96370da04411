from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import numpy as np
import pandas as pd

STEP_DISTRIBUTIONS = ("gamma", "weibull", "lnorm", "exp")
ANGLE_DISTRIBUTIONS = ("vm", "wrpcauchy", "none")


@dataclass(frozen=True)
class StateModelConfig:
    """Candidate model handed to a state estimator"""
    n_states: int
    step_distribution: str = "gamma"
    angle_distribution: str = "vm"
    # Initial values per parameter name, one entry per state,
    # e.g. {"mean": [0.1, 1.0], "sd": [0.1, 1.0]}
    step_initial: Dict[str, List[float]] = field(default_factory=dict)
    angle_initial: Dict[str, List[float]] = field(default_factory=dict)

    def __post_init__(self):
        if self.n_states < 1:
            raise ValueError(f"n_states must be >= 1, got {self.n_states}")
        if self.step_distribution not in STEP_DISTRIBUTIONS:
            raise ValueError(
                f"Unknown step distribution '{self.step_distribution}'. "
                f"Choose from {STEP_DISTRIBUTIONS}"
            )
        if self.angle_distribution not in ANGLE_DISTRIBUTIONS:
            raise ValueError(
                f"Unknown angle distribution '{self.angle_distribution}'. "
                f"Choose from {ANGLE_DISTRIBUTIONS}"
            )
        for label, initial in (("step", self.step_initial), ("angle", self.angle_initial)):
            for name, values in initial.items():
                if len(values) != self.n_states:
                    raise ValueError(
                        f"{label} parameter '{name}' has {len(values)} values "
                        f"for {self.n_states} states"
                    )


@dataclass
class StateEstimate:
    """Standard output from any state estimator"""
    parameters: Dict[str, Dict[str, List[float]]]  # {"step": {...}, "angle": {...}}
    states: np.ndarray  # most likely state per fix (Viterbi path)
    score: float  # model-comparison score, e.g. AIC
    metadata: Dict[str, Any] = field(default_factory=dict)


class StateEstimator(ABC):
    """Base class for behavioural-state estimators (external HMM libraries)"""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def fit(self, metrics: pd.DataFrame, config: StateModelConfig) -> StateEstimate:
        """Fit the model and decode states

        Args:
            metrics: Output of movement_metrics(), one row per regular fix
            config: Candidate model

        Returns:
            StateEstimate with one state label per row of metrics
        """
        pass

    def check_estimate(self, metrics: pd.DataFrame, estimate: StateEstimate,
                       config: Optional[StateModelConfig] = None) -> StateEstimate:
        """Verify an estimator's output lines up with its input"""
        if len(estimate.states) != len(metrics):
            raise ValueError(
                f"{self.name} returned {len(estimate.states)} states "
                f"for {len(metrics)} fixes"
            )
        if config is not None and len(estimate.states):
            labels = np.unique(estimate.states)
            if labels.min() < 0 or labels.max() >= config.n_states:
                raise ValueError(
                    f"{self.name} returned state labels {labels.tolist()} "
                    f"outside 0..{config.n_states - 1}"
                )
        return estimate
