"""Abstract base class for numerical integrators."""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from threebody_sim.backends.base import Backend
from threebody_sim.physics.force_calculator import ForceCalculator


class Integrator(ABC):
    """Abstract interface for numerical integrators.

    Every integrator shares the contract
    ``(state, dt, G, softening, excludedIndex) -> state'``; G and softening
    live on the ``ForceCalculator`` passed in.
    """
    
    @abstractmethod
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
        """Perform one integration step.
        
        Args:
            positions: Current positions array (n, 3)
            velocities: Current velocities array (n, 3)
            masses: Masses array (n,)
            dt: Signed time step
            backend: Compute backend
            forces: Force model used for every acceleration evaluation
            excluded_index: Body that must not move, even within sub-stages
            
        Returns:
            Tuple of (new_positions, new_velocities)
        """
        pass
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this integrator."""
        pass
    
    @property
    @abstractmethod
    def order(self) -> int:
        """Return the order of accuracy (1 for Euler, 4 for RK4)."""
        pass


def frozen_mask(n: int, excluded_index: Optional[int], backend: Backend):
    """(n, 1) mask with 0 on the excluded row and 1 elsewhere."""
    mask = [[1.0] for _ in range(n)]
    if excluded_index is not None and 0 <= excluded_index < n:
        mask[excluded_index][0] = 0.0
    return backend.array(mask)
