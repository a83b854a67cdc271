"""Energy diagnostics for N-body simulations."""

from collections import deque
from dataclasses import dataclass, asdict
from typing import Deque, List, Optional, Tuple

import numpy as np

from threebody_sim.physics.body import SimulationState

PE_DISTANCE_FLOOR = 0.1


@dataclass
class EnergySample:
    time: float
    ke: float
    pe: float
    total: float
    drift: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


def compute_energies(positions, velocities, masses, G: float = 1.0) -> Tuple[float, float, float]:
    """Compute kinetic, potential, and total energy.

    KE = sum 0.5 * m * |v|^2
    PE = -G * sum_{i<j} m_i * m_j / r_ij, where pairs closer than
    ``PE_DISTANCE_FLOOR`` contribute nothing. This floor is independent of the
    force softening.

    Args:
        positions: Body positions (n, 3)
        velocities: Body velocities (n, 3)
        masses: Body masses (n,)
        G: Gravitational constant

    Returns:
        Tuple of (kinetic_energy, potential_energy, total_energy)
    """
    positions_np = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    velocities_np = np.asarray(velocities, dtype=np.float64).reshape(-1, 3)
    masses_np = np.asarray(masses, dtype=np.float64).flatten()
    n = len(masses_np)

    v_sq = np.sum(velocities_np ** 2, axis=1)
    K = 0.5 * np.sum(masses_np * v_sq)

    U = 0.0
    if n > 1:
        i_idx, j_idx = np.triu_indices(n, k=1)
        r_diff = positions_np[i_idx] - positions_np[j_idx]
        dist = np.sqrt(np.sum(r_diff ** 2, axis=1))
        far = dist > PE_DISTANCE_FLOOR
        U = -G * np.sum(masses_np[i_idx][far] * masses_np[j_idx][far] / dist[far])

    return float(K), float(U), float(K + U)


class EnergyAnalyzer:
    """Tracks energy against a baseline and keeps a short analysis history.

    The first call to ``sample`` records the baseline. Sampling is explicit;
    callers decide when (the coordinator samples by elapsed simulated time).
    """

    def __init__(self, G: float = 1.0, history_length: int = 100):
        self.G = G
        self.initial_energy: Optional[float] = None
        self.last_sample: Optional[EnergySample] = None
        self.history: Deque[dict] = deque(maxlen=history_length)

    def reset(self) -> None:
        """Forget the baseline; the next sample becomes the new one."""
        self.initial_energy = None
        self.last_sample = None
        self.history.clear()

    def drift_percent(self, total: float) -> Optional[float]:
        """(total - initial) / initial * 100, or None without a usable baseline."""
        if self.initial_energy is None or self.initial_energy == 0:
            return None
        return (total - self.initial_energy) / self.initial_energy * 100.0

    def sample(
        self,
        state: SimulationState,
        time: float,
        tracked_index: Optional[int] = None,
    ) -> EnergySample:
        """Measure the state now and update baseline, drift and history.

        ``tracked_index`` picks the body whose phase-space point (x, px) goes
        into the history (body 0 when None).
        """
        ke, pe, total = compute_energies(state.positions, state.velocities, state.masses, self.G)
        if self.initial_energy is None:
            self.initial_energy = total
        result = EnergySample(time=time, ke=ke, pe=pe, total=total, drift=self.drift_percent(total))
        self.last_sample = result

        index = tracked_index if tracked_index is not None else 0
        x = px = 0.0
        if 0 <= index < state.n_bodies:
            x = float(state.positions[index, 0])
            px = float(state.velocities[index, 0] * state.masses[index])
        self.history.append({
            "time": round(time, 1),
            "ke": ke,
            "pe": pe,
            "total": total,
            "x": x,
            "px": px,
        })
        return result


def center_of_mass(state: SimulationState) -> Tuple[np.ndarray, np.ndarray]:
    """Mass-weighted mean position and velocity."""
    total = np.sum(state.masses)
    if state.n_bodies == 0 or total == 0:
        return np.zeros(3), np.zeros(3)
    com = np.sum(state.masses[:, np.newaxis] * state.positions, axis=0) / total
    com_v = np.sum(state.masses[:, np.newaxis] * state.velocities, axis=0) / total
    return com, com_v


def total_momentum(state: SimulationState) -> np.ndarray:
    return np.sum(state.masses[:, np.newaxis] * state.velocities, axis=0)


def predict_collisions(state: SimulationState, horizon: float = 100.0) -> List[dict]:
    """Flag pairs on a linear collision course.

    A pair is reported when it is closing, its projected time to contact is
    below ``horizon`` and it is within three times a mass-based proximity
    distance.
    """
    warnings_out = []
    pos, vel, mass = state.positions, state.velocities, state.masses
    for i in range(state.n_bodies):
        for j in range(i + 1, state.n_bodies):
            d = pos[j] - pos[i]
            dist = float(np.linalg.norm(d))
            if dist == 0:
                continue
            dv = vel[j] - vel[i]
            closing_rate = -float(np.dot(d, dv)) / dist
            if closing_rate <= 0:
                continue
            time_to_collision = dist / closing_rate
            min_dist = max(6.0, np.cbrt(mass[i]) * 6.0, np.cbrt(mass[j]) * 6.0) * 2.0
            if time_to_collision < horizon and dist < min_dist * 3.0:
                warnings_out.append({"bodies": (i, j), "time_to_collision": time_to_collision})
    return warnings_out
