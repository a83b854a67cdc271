"""Configuration management."""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class Config:
    """Simulation configuration."""
    # Time stepping
    base_dt: float = 0.01
    sim_speed: float = 1.0
    time_direction: int = 1

    # Physics
    gravity_g: float = 1.0
    softening: float = 0.1
    integrator: str = "EULER"
    enable_collisions: bool = False

    # Execution
    use_worker: bool = False
    use_gpu: bool = False
    gpu_capacity: int = 1024
    array_backend: Optional[str] = None

    # Diagnostics
    stats_interval: float = 0.3
    analysis_history: int = 100
    trail_length: int = 300

    # Scenario
    scenario: str = "figure8"

    # Reproducibility
    seed: Optional[int] = None

    def __post_init__(self):
        self.integrator = self.integrator.upper()
        if self.integrator not in ("EULER", "RK4"):
            raise ValueError(f"Unknown integrator: {self.integrator}")
        if self.time_direction not in (1, -1):
            raise ValueError(f"time_direction must be +1 or -1, got {self.time_direction}")
        if self.gpu_capacity < 1:
            raise ValueError(f"gpu_capacity must be >= 1, got {self.gpu_capacity}")
        if self.stats_interval <= 0:
            raise ValueError(f"stats_interval must be > 0, got {self.stats_interval}")

    @property
    def dt(self) -> float:
        return self.base_dt * self.sim_speed * self.time_direction


def _is_yaml(path: Path) -> bool:
    return path.suffix in (".yaml", ".yml")


def read_config_file(config_path: str) -> dict:
    """Raw key/value pairs of a .json or .yaml config file."""
    config_path = Path(config_path)

    with open(config_path, 'r') as f:
        if _is_yaml(config_path):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    return data or {}


def load_config(config_path: str) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to config file (.json or .yaml)

    Returns:
        Config object

    Raises:
        TypeError: if the file contains keys ``Config`` does not know
    """
    return Config(**read_config_file(config_path))


def save_config(config: Config, output_path: str):
    """Save configuration to file.

    Args:
        config: Config object
        output_path: Output file path (.json or .yaml)
    """
    output_path = Path(output_path)
    data = asdict(config)

    with open(output_path, 'w') as f:
        if _is_yaml(output_path):
            yaml.dump(data, f, default_flow_style=False)
        else:
            json.dump(data, f, indent=2)
