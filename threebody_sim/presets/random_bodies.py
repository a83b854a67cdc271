"""Randomly placed bodies, used for the chaos scenario and for add-body requests."""

from typing import List, Optional

import numpy as np

from threebody_sim.presets.base import Preset, make_body

BODY_COLORS = (0xEF4444, 0x3B82F6, 0x22C55E, 0xEAB308, 0xA855F7, 0xEC4899, 0x06B6D4)


def random_body(rng: Optional[np.random.Generator] = None) -> dict:
    """One body record: position in [-2, 2)^3, velocity components in [-0.4, 0.4), mass in [0.5, 3.5)."""
    rng = rng if rng is not None else np.random.default_rng()
    position = rng.uniform(0.0, 1.0, 3) * 4 - 2
    velocity = (rng.uniform(0.0, 1.0, 3) - 0.5) * 0.8
    mass = rng.uniform(0.0, 1.0) * 3 + 0.5
    return make_body(position, velocity, mass, BODY_COLORS[int(rng.integers(len(BODY_COLORS)))])


class RandomChaos(Preset):
    """Random positions and velocities in all three dimensions."""

    def __init__(self, n_bodies: int = 3, seed: int = None):
        super().__init__(seed)
        if n_bodies < 1:
            raise ValueError(f"n_bodies must be >= 1, got {n_bodies}")
        self.n_bodies = n_bodies

    @property
    def name(self) -> str:
        return "chaos"

    def generate(self) -> List[dict]:
        rng = self.rng()
        return [random_body(rng) for _ in range(self.n_bodies)]
