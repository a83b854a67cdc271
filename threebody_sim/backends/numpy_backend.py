"""NumPy backend implementation."""

import numpy as np
from threebody_sim.backends.base import ArrayModuleBackend


class NumPyBackend(ArrayModuleBackend):
    """Host backend in float64. Always available; the inline pipeline uses it."""

    xp = np
    float_dtype = np.float64

    @property
    def name(self) -> str:
        return "numpy"

    @property
    def device(self) -> str:
        return "cpu"
