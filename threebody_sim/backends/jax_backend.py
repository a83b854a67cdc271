"""JAX backend implementation (optional, GPU support)."""

from typing import Any
import numpy as np
from threebody_sim.backends.base import ArrayModuleBackend

try:
    import jax
    import jax.numpy as jnp
    JAX_AVAILABLE = True
except ImportError:
    JAX_AVAILABLE = False


class JAXBackend(ArrayModuleBackend):
    """JAX-based backend on the default JAX device, float32.

    JAX arrays are immutable; the kernels only ever build new arrays.
    """

    def __init__(self):
        if not JAX_AVAILABLE:
            raise ImportError("JAX not available. Install with: pip install jax jaxlib")

        self.xp = jnp
        self.float_dtype = jnp.float32
        self._device = jax.devices()[0]

    @property
    def name(self) -> str:
        return "jax"

    @property
    def device(self) -> str:
        return str(self._device)

    def to_numpy(self, array: Any) -> np.ndarray:
        return np.asarray(jax.device_get(array))

    def synchronize(self) -> None:
        jnp.zeros(()).block_until_ready()
