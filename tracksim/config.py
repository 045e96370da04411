"""
Simulation scenario configuration.

Scenarios are read from config.yaml at the repository root (or any path given)
and merged over DEFAULT_CONFIG. Durations are pandas-style strings ("4h",
"15min", "1min") or numbers of seconds.
"""

from copy import deepcopy
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import pandas as pd
import yaml

from .simulation.phases import PhaseDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

# Reference scenario: an animal that wanders around a site, migrates, settles,
# and heads back. 352 simulated fixes plus one duplicated boundary fix.
DEFAULT_CONFIG: Dict[str, Any] = {
    "seed": 42,
    "animal_id": "sim_1",
    "start_time": "2019-05-01T00:00:00Z",
    "schedule": {
        "cadence": "4h",
        "tolerance": "15min",
        "rounding_unit": None,
    },
    "noise": {
        "max_jitter_seconds": 600,
        "drop_fraction": 0.02,
    },
    "phases": [
        {"name": "encamped_a", "step_count": 100, "step_scale": 2.0, "correlation": 0.8,
         "bias": 0.0, "decay_exponent": 0.0, "bias_target": [0.0, 0.0],
         "start_location": [0.0, 0.0]},
        {"name": "migration_out", "step_count": 80, "step_scale": 10.0, "correlation": 0.9,
         "bias": 0.5, "decay_exponent": 0.0, "bias_target": [800.0, 600.0],
         "retain_boundary_duplicate": True},
        {"name": "encamped_b", "step_count": 100, "step_scale": 2.0, "correlation": 0.8,
         "bias": 0.01, "decay_exponent": 1.0, "bias_target": [800.0, 600.0]},
        {"name": "migration_back", "step_count": 71, "step_scale": 10.0, "correlation": 0.9,
         "bias": 0.5, "decay_exponent": 0.0, "bias_target": [0.0, 0.0]},
    ],
}


def _merge(base: Dict, override: Dict) -> Dict:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_simulation_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a scenario, falling back to DEFAULT_CONFIG.

    Args:
        config_path: YAML file (default: config.yaml at the repository root)

    Returns:
        Configuration dictionary (file values merged over the defaults)
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.warning(f"Config file not found: {path}. Using default scenario")
        return deepcopy(DEFAULT_CONFIG)

    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")

    logger.info(f"Loaded simulation config from {path}")
    return _merge(DEFAULT_CONFIG, loaded)


def build_phases(config: Dict[str, Any]) -> List[PhaseDescriptor]:
    """Turn the 'phases' list of a config into PhaseDescriptors."""
    phases = []
    for i, entry in enumerate(config.get("phases", [])):
        try:
            start = entry.get("start_location")
            phases.append(PhaseDescriptor(
                step_count=int(entry["step_count"]),
                step_scale=float(entry["step_scale"]),
                correlation=float(entry["correlation"]),
                bias_target=tuple(float(v) for v in entry["bias_target"]),
                bias=float(entry.get("bias", 0.0)),
                decay_exponent=float(entry.get("decay_exponent", 0.0)),
                start_location=tuple(float(v) for v in start) if start is not None else None,
                retain_boundary_duplicate=bool(entry.get("retain_boundary_duplicate", False)),
                name=str(entry.get("name", f"phase_{i}")),
            ))
        except KeyError as e:
            raise ValueError(f"Phase {i} is missing required key {e}") from e
    return phases


def parse_start_time(value: Any) -> datetime:
    """Parse the configured start time to a python datetime (UTC if no zone)."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts.to_pydatetime()
