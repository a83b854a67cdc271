"""Softened pairwise gravitational acceleration.

All arrays stay on the compute backend; only the integrators and the grid
kernel call into this module.
"""

from typing import Any, Optional
from threebody_sim.backends.base import Backend

SOFTENING_DEFAULT = 0.1


class ForceCalculator:
    """Direct O(n^2) summation of softened Newtonian gravity.

    For body i:
        a_i = sum_{j != i} G * m_j * (r_j - r_i) / (|r_j - r_i|^2 + eps^2)^(3/2)

    evaluated as ``f / dist * diff`` with ``f = G * m_j / distSq`` and
    ``dist = sqrt(distSq)``. The softening keeps the sum finite when two bodies
    coincide.
    """

    def __init__(self, G: float = 1.0, softening: float = SOFTENING_DEFAULT):
        self.G = G
        self.softening = softening

    def compute_accelerations(
        self,
        positions: Any,
        masses: Any,
        backend: Backend,
        excluded_index: Optional[int] = None,
    ) -> Any:
        """Compute accelerations for every body.

        Args:
            positions: (n, 3) backend array
            masses: (n,) backend array
            backend: Compute backend
            excluded_index: Body under external control; its row is zero so
                integration never moves it. It still attracts the others.

        Returns:
            (n, 3) backend array of accelerations
        """
        n = positions.shape[0]
        if n == 0:
            return backend.zeros((0, 3))
        r_diff = backend.pairwise_differences(positions)
        dist_sq = backend.add(
            backend.sum(backend.square(r_diff), axis=2),
            self.softening * self.softening,
        )
        dist = backend.sqrt(dist_sq)
        m_j = backend.expand_dims(masses, 0)
        f = backend.divide(backend.multiply(m_j, self.G), dist_sq)
        coeff = backend.divide(f, dist)
        # Zero diagonal: coeff * (1 - eye)
        coeff = backend.multiply(coeff, backend.subtract(1.0, backend.eye(n)))
        if excluded_index is not None and 0 <= excluded_index < n:
            row_mask = [1.0] * n
            row_mask[excluded_index] = 0.0
            coeff = backend.multiply(coeff, backend.expand_dims(backend.array(row_mask), 1))
        return backend.sum(backend.multiply(backend.expand_dims(coeff, 2), r_diff), axis=1)
