"""Symplectic (semi-implicit) Euler integrator, O(dt^2) local error."""

from typing import Optional, Tuple
from threebody_sim.backends.base import Backend
from threebody_sim.physics.force_calculator import ForceCalculator
from threebody_sim.physics.integrators.base import Integrator, frozen_mask


class EulerIntegrator(Integrator):
    """Symplectic Euler - velocity first, then position with the new velocity.
    
    One force evaluation per step. Cheap, and its energy error stays bounded
    rather than growing secularly.
    """
    
    @property
    def name(self) -> str:
        return "euler"
    
    @property
    def order(self) -> int:
        return 1
    
    def step(
        self,
        positions,
        velocities,
        masses,
        dt: float,
        backend: Backend,
        forces: ForceCalculator,
        excluded_index: Optional[int] = None,
    ) -> Tuple:
        """Euler step: v_new = v + a*dt, r_new = r + v_new*dt."""
        n = positions.shape[0]
        accelerations = forces.compute_accelerations(positions, masses, backend, excluded_index)
        mask = frozen_mask(n, excluded_index, backend)
        
        # Update velocities: v_new = v + a*dt (a is already zero on the excluded row)
        new_velocities = backend.add(velocities, backend.multiply(accelerations, dt))
        
        # Update positions: r_new = r + v_new*dt
        step = backend.multiply(backend.multiply(new_velocities, dt), mask)
        new_positions = backend.add(positions, step)
        
        return new_positions, new_velocities
