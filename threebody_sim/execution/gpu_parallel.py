"""Data-parallel execution backend over a fixed-capacity body grid.

Each body is one texel of a square grid of side S (capacity S*S). Two RGBA
float32 buffers hold ``(x, y, z, mass)`` and ``(vx, vy, vz, 0)``; texel ``i``
sits at grid coordinate ``(i mod S, i div S)``. A step is two kernel passes
(new velocities, then new positions) followed by a ping-pong swap, all run
through an array backend so the same code drives NumPy, CuPy, JAX or PyTorch.
"""

import math
import warnings
from typing import Optional

import numpy as np

from threebody_sim.backends.base import Backend
from threebody_sim.backends.factory import get_backend
from threebody_sim.execution.base import (
    BackendUnavailableError,
    CapacityExceededError,
    ExecutionBackend,
    StepConfig,
    StepResult,
    UnsupportedIntegratorError,
)
from threebody_sim.execution.inline import finish_step
from threebody_sim.physics.body import SimulationState
from threebody_sim.physics.collisions import CollisionResolver

DEFAULT_CAPACITY = 1024


def grid_side(capacity: int) -> int:
    """Smallest S with S*S >= capacity."""
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")
    return int(math.ceil(math.sqrt(capacity)))


def texel_coord(index: int, side: int):
    return index % side, index // side


class GridBuffers:
    """Double-buffered position/velocity grids owned by one backend instance."""

    def __init__(self, backend: Backend, side: int):
        self.backend = backend
        self.side = side
        shape = (side, side, 4)
        empty = np.zeros(shape, dtype=np.float32)
        self.position = backend.array(empty)
        self.velocity = backend.array(empty)
        self.position_out = backend.array(empty)
        self.velocity_out = backend.array(empty)

    @property
    def texels(self) -> int:
        return self.side * self.side

    def upload(self, state: SimulationState) -> None:
        """Write the state into the front buffers; unused texels are zero."""
        pos = np.zeros((self.texels, 4), dtype=np.float32)
        vel = np.zeros((self.texels, 4), dtype=np.float32)
        n = state.n_bodies
        pos[:n, :3] = state.positions
        pos[:n, 3] = state.masses
        vel[:n, :3] = state.velocities
        self.position = self.backend.array(pos.reshape(self.side, self.side, 4))
        self.velocity = self.backend.array(vel.reshape(self.side, self.side, 4))

    def swap_velocity(self) -> None:
        self.velocity, self.velocity_out = self.velocity_out, self.velocity

    def swap_position(self) -> None:
        self.position, self.position_out = self.position_out, self.position

    def read_back(self, n: int):
        self.backend.synchronize()
        pos = self.backend.to_numpy(self.position).reshape(self.texels, 4)[:n]
        vel = self.backend.to_numpy(self.velocity).reshape(self.texels, 4)[:n]
        return pos.astype(np.float64), vel.astype(np.float64)


class GpuParallelBackend(ExecutionBackend):
    """Euler-only grid kernel. Collisions, when enabled, run on the host afterwards.

    Device support is probed at construction; if the array backend cannot be
    created the instance reports ``supported = False`` and never runs.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        array_backend: Optional[Backend] = None,
        backend_name: Optional[str] = None,
        resolver: Optional[CollisionResolver] = None,
    ):
        super().__init__()
        self.side = grid_side(capacity)
        self.capacity = self.side * self.side
        self.resolver = resolver or CollisionResolver()
        self.buffers: Optional[GridBuffers] = None
        try:
            self.array_backend = array_backend or get_backend(backend_name, prefer_gpu=True)
            self.buffers = GridBuffers(self.array_backend, self.side)
            self._diagonal = self.array_backend.array(
                1.0 - np.eye(self.capacity, dtype=np.float32)
            )
        except Exception as exc:
            warnings.warn(f"Grid physics backend unavailable, using inline physics: {exc}")
            self.array_backend = None
            self.buffers = None
            self.mark_unsupported()

    @property
    def name(self) -> str:
        return "gpu"

    def can_run(self, n_bodies: int, config: StepConfig) -> bool:
        return (
            self.ready
            and n_bodies <= self.capacity
            and str(config.integrator).upper() == "EULER"
        )

    def _moving_mask(self, n: int, excluded_index: Optional[int]):
        moving = np.ones(n, dtype=np.float32)
        if excluded_index is not None and 0 <= excluded_index < n:
            moving[excluded_index] = 0.0
        return self.array_backend.array(moving)

    def _velocity_pass(self, n: int, dt: float, G: float, softening: float, moving):
        """Pass 1: new velocity for every live texel from all other live texels.

        Only the live prefix ``[:n]`` is computed; texels past it are carried
        over unchanged.
        """
        b = self.array_backend
        c = self.capacity
        pos = b.reshape(self.buffers.position, (c, 4))
        vel = b.reshape(self.buffers.velocity, (c, 4))
        xyz = pos[:n, :3]
        mass = pos[:n, 3]

        diff = b.pairwise_differences(xyz)
        dist_sq = b.add(b.sum(b.square(diff), axis=2), softening * softening)
        dist = b.sqrt(dist_sq)
        # The diagonal never contributes.
        source = b.multiply(b.multiply(b.expand_dims(mass, 0), G), self._diagonal[:n, :n])
        coeff = b.divide(b.divide(source, dist_sq), dist)
        acc = b.sum(b.multiply(b.expand_dims(coeff, 2), diff), axis=1)

        new_xyz = b.add(vel[:n, :3], b.multiply(acc, b.expand_dims(b.multiply(moving, dt), 1)))
        live = b.stack([new_xyz[:, 0], new_xyz[:, 1], new_xyz[:, 2], vel[:n, 3]], axis=1)
        out = b.concatenate([live, vel[n:]], axis=0)
        self.buffers.velocity_out = b.reshape(out, (self.side, self.side, 4))

    def _position_pass(self, n: int, dt: float, moving):
        """Pass 2: new position from the new velocity and the old position."""
        b = self.array_backend
        c = self.capacity
        pos = b.reshape(self.buffers.position, (c, 4))
        vel = b.reshape(self.buffers.velocity, (c, 4))
        step = b.multiply(vel[:n, :3], b.expand_dims(b.multiply(moving, dt), 1))
        new_xyz = b.add(pos[:n, :3], step)
        live = b.stack([new_xyz[:, 0], new_xyz[:, 1], new_xyz[:, 2], pos[:n, 3]], axis=1)
        out = b.concatenate([live, pos[n:]], axis=0)
        self.buffers.position_out = b.reshape(out, (self.side, self.side, 4))

    def step(self, state: SimulationState, config: StepConfig) -> StepResult:
        if not self.supported or self.buffers is None:
            raise BackendUnavailableError("Grid physics backend is not available")
        n = state.n_bodies
        if n > self.capacity:
            raise CapacityExceededError(
                f"{n} bodies exceed grid capacity {self.capacity} ({self.side}x{self.side})"
            )
        if str(config.integrator).upper() != "EULER":
            raise UnsupportedIntegratorError("Grid physics backend only implements Euler")

        dt = config.dt
        try:
            moving = self._moving_mask(n, config.excluded_index)
            self.buffers.upload(state)
            self._velocity_pass(n, dt, config.G, config.softening, moving)
            self.buffers.swap_velocity()
            self._position_pass(n, dt, moving)
            self.buffers.swap_position()
            pos, vel = self.buffers.read_back(n)
        except Exception as exc:
            # Device errors (lost context, out of memory) surface as whatever the array library raises.
            self.mark_unsupported()
            raise BackendUnavailableError(f"Grid physics kernel failed: {exc}") from exc

        # Colors are not on the device; reattach them from the input.
        result_state = SimulationState(pos[:, :3], vel[:, :3], pos[:, 3], list(state.colors))
        return finish_step(result_state, config, self.resolver)

    def close(self) -> None:
        self.buffers = None
        self.mark_unsupported()
