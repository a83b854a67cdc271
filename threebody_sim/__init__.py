"""
Three-body Simulator - small-N gravitational dynamics with interchangeable execution backends.

Features:
- Softened Newtonian gravity with Symplectic Euler and RK4 integrators
- Inelastic merges and restitution bounces
- Energy drift tracking
- Inline, worker-thread and grid-kernel execution backends
- Multiple array backends for the grid kernel (NumPy, JAX, PyTorch, CuPy)
- JSON/YAML state export and import
"""

__version__ = "0.1.0"

from threebody_sim.coordinator import StepCoordinator
from threebody_sim.backends.factory import get_backend, list_available_backends

__all__ = [
    "StepCoordinator",
    "get_backend",
    "list_available_backends",
]
