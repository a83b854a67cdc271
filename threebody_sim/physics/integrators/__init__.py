"""Numerical integrators for N-body simulations."""

from threebody_sim.physics.integrators.base import Integrator
from threebody_sim.physics.integrators.euler import EulerIntegrator
from threebody_sim.physics.integrators.rk4 import RK4Integrator

INTEGRATORS = {
    "EULER": EulerIntegrator,
    "RK4": RK4Integrator,
}


def get_integrator(name: str) -> Integrator:
    """Get integrator by name ('EULER' or 'RK4', case-insensitive)."""
    integrator_class = INTEGRATORS.get(str(name).upper())
    if integrator_class is None:
        raise ValueError(f"Unknown integrator: {name}. Available: {list(INTEGRATORS.keys())}")
    return integrator_class()


__all__ = ["Integrator", "EulerIntegrator", "RK4Integrator", "INTEGRATORS", "get_integrator"]
