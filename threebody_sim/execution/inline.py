"""Synchronous in-process execution backend and the shared step pipeline."""

from typing import Optional

import numpy as np

from threebody_sim.backends.base import Backend
from threebody_sim.backends.numpy_backend import NumPyBackend
from threebody_sim.execution.base import ExecutionBackend, StepConfig, StepResult, StepStats
from threebody_sim.physics.body import SimulationState
from threebody_sim.physics.collisions import CollisionResolver
from threebody_sim.physics.diagnostics import compute_energies
from threebody_sim.physics.force_calculator import ForceCalculator
from threebody_sim.physics.integrators import get_integrator


def finish_step(state: SimulationState, config: StepConfig, resolver: Optional[CollisionResolver] = None) -> StepResult:
    """Collision pass then energy, on an already integrated ``state``."""
    removed = []
    if config.collisions_enabled:
        resolver = resolver or CollisionResolver()
        removed = resolver.resolve(state, config.excluded_index).removed_indices
    ke, pe, total = compute_energies(state.positions, state.velocities, state.masses, config.G)
    stats = StepStats(
        time=config.current_time + config.dt,
        ke=ke,
        pe=pe,
        total=total,
        body_count=state.n_bodies,
    )
    return StepResult(state=state, stats=stats, removed_indices=removed)


def run_physics_step(
    state: SimulationState,
    config: StepConfig,
    backend: Optional[Backend] = None,
    resolver: Optional[CollisionResolver] = None,
) -> StepResult:
    """Integrator -> Collision Resolver -> Energy Analyzer on a copy of ``state``.

    Each stage sees the fully materialized output of the previous one. The
    input state is never mutated.
    """
    backend = backend or NumPyBackend()
    work = state.copy()
    if work.n_bodies > 0:
        integrator = get_integrator(config.integrator)
        forces = ForceCalculator(G=config.G, softening=config.softening)
        new_positions, new_velocities = integrator.step(
            backend.array(work.positions),
            backend.array(work.velocities),
            backend.array(work.masses),
            config.dt,
            backend,
            forces,
            config.excluded_index,
        )
        work.positions = backend.to_numpy(new_positions).astype(np.float64)
        work.velocities = backend.to_numpy(new_velocities).astype(np.float64)
    return finish_step(work, config, resolver)


class InlineBackend(ExecutionBackend):
    """Runs the pipeline on the calling thread. Always supported."""

    def __init__(self, array_backend: Optional[Backend] = None, resolver: Optional[CollisionResolver] = None):
        super().__init__()
        self.array_backend = array_backend or NumPyBackend()
        self.resolver = resolver or CollisionResolver()

    @property
    def name(self) -> str:
        return "inline"

    def step(self, state: SimulationState, config: StepConfig) -> StepResult:
        return run_physics_step(state, config, self.array_backend, self.resolver)
