"""Array compute backends used by the physics kernels."""

from threebody_sim.backends.base import Backend
from threebody_sim.backends.factory import get_backend, list_available_backends

__all__ = ["Backend", "get_backend", "list_available_backends"]
