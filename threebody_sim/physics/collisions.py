"""Post-integration collision pass: inelastic merges and restitution bounces."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from threebody_sim.physics.body import SimulationState

MERGE_THRESHOLD = 0.3
RESTITUTION = 0.95


def collision_radius(mass: float) -> float:
    """Radius proxy derived from mass: cbrt(m) * 0.5."""
    return float(np.cbrt(mass)) * 0.5


def remap_index(index: Optional[int], removed_indices: Sequence[int]) -> Optional[int]:
    """Translate an index held across a step that removed ``removed_indices``.

    Returns None when the referenced body was itself removed.
    """
    if index is None:
        return None
    removed = set(removed_indices)
    if index in removed:
        return None
    return index - sum(1 for r in removed if r < index)


@dataclass
class CollisionReport:
    removed_indices: List[int] = field(default_factory=list)
    merges: int = 0
    bounces: int = 0


class CollisionResolver:
    """Resolves overlaps between bodies after an integration step.

    For each unordered pair (i, j), i < j, with radii r = cbrt(m) * 0.5:
    - dist < (r_i + r_j) * merge_threshold: j is absorbed into i (mass-weighted
      position and velocity, so momentum and centre of mass are conserved).
    - otherwise, if dist < r_i + r_j and the pair is closing: an impulse with
      the given restitution is exchanged along the contact normal and the
      bodies are pushed apart by half the overlap each.
    """

    def __init__(self, merge_threshold: float = MERGE_THRESHOLD, restitution: float = RESTITUTION):
        self.merge_threshold = merge_threshold
        self.restitution = restitution

    def resolve(self, state: SimulationState, excluded_index: Optional[int] = None) -> CollisionReport:
        """Mutate ``state`` in place and return what happened.

        Removed rows are deleted from ``state`` one at a time in descending
        index order, so each deletion leaves the lower indices valid.
        """
        report = CollisionReport()
        pos = state.positions
        vel = state.velocities
        mass = state.masses
        n = state.n_bodies
        to_remove = set()

        for i in range(n):
            if i in to_remove or i == excluded_index:
                continue
            for j in range(i + 1, n):
                if j in to_remove or j == excluded_index:
                    continue

                delta = pos[i] - pos[j]
                dist = float(np.sqrt(np.dot(delta, delta)))
                collision_dist = collision_radius(mass[i]) + collision_radius(mass[j])
                if dist >= collision_dist:
                    continue

                if dist < collision_dist * self.merge_threshold:
                    m1, m2 = mass[i], mass[j]
                    total = m1 + m2
                    vel[i] = (m1 * vel[i] + m2 * vel[j]) / total
                    pos[i] = (m1 * pos[i] + m2 * pos[j]) / total
                    mass[i] = total
                    to_remove.add(j)
                    report.merges += 1
                    continue

                # Contact normal from j to i
                normal = delta / dist
                closing_speed = float(np.dot(vel[j] - vel[i], normal))
                if closing_speed <= 0:
                    continue

                m1, m2 = mass[i], mass[j]
                impulse = (1.0 + self.restitution) * closing_speed / (1.0 / m1 + 1.0 / m2)
                vel[i] = vel[i] + (impulse / m1) * normal
                vel[j] = vel[j] - (impulse / m2) * normal

                separation = (collision_dist - dist) * 0.5
                pos[i] = pos[i] + normal * separation
                pos[j] = pos[j] - normal * separation
                report.bounces += 1

        report.removed_indices = sorted(to_remove, reverse=True)
        for index in report.removed_indices:
            state.remove(index)
        return report
