"""Runge-Kutta 4th order integrator (high accuracy, O(dt^4) local error)."""

from typing import Optional, Tuple
from threebody_sim.backends.base import Backend
from threebody_sim.physics.force_calculator import ForceCalculator
from threebody_sim.physics.integrators.base import Integrator, frozen_mask


class RK4Integrator(Integrator):
    """Classic four-stage Runge-Kutta.
    
    Four force evaluations per step, so roughly four times the cost of Euler.
    """
    
    @property
    def name(self) -> str:
        return "rk4"
    
    @property
    def order(self) -> int:
        return 4
    
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
        """RK4 step for dr/dt = v, dv/dt = a(r).
        
        k1 = f(s)
        k2 = f(s + k1*dt/2)
        k3 = f(s + k2*dt/2)
        k4 = f(s + k3*dt)
        s_new = s + (k1 + 2*k2 + 2*k3 + k4)*dt/6
        
        The excluded body has zero derivatives in every stage, so it is never
        advanced, not even in the intermediate states.
        """
        n = positions.shape[0]
        mask = frozen_mask(n, excluded_index, backend)
        
        def derivatives(r, v):
            dr = backend.multiply(v, mask)
            dv = forces.compute_accelerations(r, masses, backend, excluded_index)
            return dr, dv
        
        k1_r, k1_v = derivatives(positions, velocities)
        
        k2_r, k2_v = derivatives(
            backend.add(positions, backend.multiply(k1_r, dt * 0.5)),
            backend.add(velocities, backend.multiply(k1_v, dt * 0.5)),
        )
        
        k3_r, k3_v = derivatives(
            backend.add(positions, backend.multiply(k2_r, dt * 0.5)),
            backend.add(velocities, backend.multiply(k2_v, dt * 0.5)),
        )
        
        k4_r, k4_v = derivatives(
            backend.add(positions, backend.multiply(k3_r, dt)),
            backend.add(velocities, backend.multiply(k3_v, dt)),
        )
        
        def combine(k1, k2, k3, k4):
            total = backend.add(
                backend.add(k1, backend.multiply(k2, 2.0)),
                backend.add(backend.multiply(k3, 2.0), k4),
            )
            return backend.multiply(total, dt / 6.0)
        
        new_positions = backend.add(positions, combine(k1_r, k2_r, k3_r, k4_r))
        new_velocities = backend.add(velocities, combine(k1_v, k2_v, k3_v, k4_v))
        
        return new_positions, new_velocities
