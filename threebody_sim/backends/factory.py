"""Backend factory for creating and managing compute backends."""

from typing import Callable, Dict, List, Optional
from threebody_sim.backends.base import Backend
from threebody_sim.backends.numpy_backend import NumPyBackend

INSTALL_HINTS = {
    "jax": "pip install jax jaxlib",
    "pytorch": "pip install torch",
    "cupy": "pip install cupy",
}

# Optional backends, registered only when their library imports.
_OPTIONAL: Dict[str, Callable[[], Backend]] = {}

try:
    from threebody_sim.backends.cupy_backend import CuPyBackend, CUPY_AVAILABLE
    if CUPY_AVAILABLE:
        _OPTIONAL["cupy"] = CuPyBackend
except ImportError:
    pass

try:
    from threebody_sim.backends.jax_backend import JAXBackend, JAX_AVAILABLE
    if JAX_AVAILABLE:
        _OPTIONAL["jax"] = JAXBackend
except ImportError:
    pass

try:
    from threebody_sim.backends.pytorch_backend import PyTorchBackend, TORCH_AVAILABLE
    if TORCH_AVAILABLE:
        _OPTIONAL["pytorch"] = PyTorchBackend
except ImportError:
    pass

# Auto-selection order for the grid kernel.
GPU_PREFERENCE = ("cupy", "jax", "pytorch")


def list_available_backends() -> List[str]:
    """Names of the backends whose libraries are installed. NumPy is always first."""
    return ["numpy"] + [name for name in GPU_PREFERENCE if name in _OPTIONAL]


def get_backend(name: Optional[str] = None, prefer_gpu: bool = True) -> Backend:
    """Get a backend instance.

    Args:
        name: Backend name ('numpy', 'jax', 'pytorch', 'cupy'). If None, auto-selects.
        prefer_gpu: If True and name is None, try the GPU libraries before NumPy.
            A library that imports but cannot open a device is skipped.

    Raises:
        ValueError: If the requested backend is unknown or not installed
    """
    if name is None:
        if prefer_gpu:
            for candidate in GPU_PREFERENCE:
                if candidate not in _OPTIONAL:
                    continue
                try:
                    return _OPTIONAL[candidate]()
                except Exception:
                    continue
        return NumPyBackend()

    name_lower = name.lower()
    if name_lower == "numpy":
        return NumPyBackend()
    if name_lower in _OPTIONAL:
        return _OPTIONAL[name_lower]()
    if name_lower in INSTALL_HINTS:
        raise ValueError(f"{name} backend not available. Install with: {INSTALL_HINTS[name_lower]}")
    raise ValueError(f"Unknown backend '{name}'. Available: {list_available_backends()}")
