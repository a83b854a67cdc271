"""Base class for preset scenarios."""

from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np


def make_body(position: Sequence[float], velocity: Sequence[float], mass: float, color: int) -> dict:
    """Body record in the layout the coordinator and state files use."""
    x, y, z = (float(c) for c in position)
    vx, vy, vz = (float(c) for c in velocity)
    return {"x": x, "y": y, "z": z, "vx": vx, "vy": vy, "vz": vz, "mass": float(mass), "color": int(color)}


class Preset(ABC):
    """A named scenario: initial body records plus the G it is meant for."""

    gravity_g: float = 1.0

    def __init__(self, seed: int = None):
        self.seed = seed

    def rng(self) -> np.random.Generator:
        """Fresh generator, so the same seed always yields the same scenario."""
        return np.random.default_rng(self.seed)

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def generate(self) -> List[dict]:
        """Return ``{x, y, z, vx, vy, vz, mass, color}`` records, one per body."""
        pass
