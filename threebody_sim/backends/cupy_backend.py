"""CuPy backend implementation (optional, CUDA-only)."""

from typing import Any
import numpy as np
from threebody_sim.backends.base import ArrayModuleBackend

try:
    import cupy as cp
    CUPY_AVAILABLE = True
except ImportError:
    CUPY_AVAILABLE = False


class CuPyBackend(ArrayModuleBackend):
    """CuPy-based backend (CUDA GPU only), float32."""

    def __init__(self, device: int = 0):
        """Initialize CuPy backend.

        Args:
            device: CUDA device ID
        """
        if not CUPY_AVAILABLE:
            raise ImportError("CuPy not available. Install with: pip install cupy")

        self.xp = cp
        self.float_dtype = cp.float32
        self._device = device
        cp.cuda.Device(device).use()

    @property
    def name(self) -> str:
        return "cupy"

    @property
    def device(self) -> str:
        return f"cuda:{self._device}"

    def to_numpy(self, array: Any) -> np.ndarray:
        return cp.asnumpy(array)

    def synchronize(self) -> None:
        cp.cuda.Stream.null.synchronize()
