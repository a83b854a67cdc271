"""Step coordinator: owns the body store and drives the execution backends."""

import copy
import time as walltime
import warnings
from concurrent.futures import Future, wait as wait_futures
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from threebody_sim.execution.base import (
    BackendUnavailableError,
    CapacityExceededError,
    ExecutionBackend,
    StepConfig,
    StepInFlightError,
    StepResult,
    StepStats,
    UnsupportedIntegratorError,
)
from threebody_sim.execution.gpu_parallel import GpuParallelBackend
from threebody_sim.execution.inline import InlineBackend
from threebody_sim.execution.offloaded import OffloadedBackend
from threebody_sim.io.state_io import export_state, parse_state
from threebody_sim.physics.body import DEFAULT_COLOR, BodyStore
from threebody_sim.physics.diagnostics import (
    EnergyAnalyzer,
    EnergySample,
    center_of_mass,
    predict_collisions,
)
from threebody_sim.presets import get_preset, random_body
from threebody_sim.utils.config import Config

SPEED_EPSILON = 1e-6
# Seconds between worker liveness checks while blocked in wait().
WORKER_CHECK_INTERVAL = 0.1

# Errors that make the coordinator run the step inline instead.
FALLBACK_ERRORS = (
    BackendUnavailableError,
    CapacityExceededError,
    UnsupportedIntegratorError,
    StepInFlightError,
)


class CoordinatorState(Enum):
    IDLE = "idle"
    STEP_IN_FLIGHT = "step_in_flight"


class StepCoordinator:
    """Single-owner controller for one simulation.

    Only the thread that calls ``tick``/``poll``/``wait`` ever mutates the body
    store. Ticks that arrive while a step is in flight are dropped and counted
    in ``dropped_ticks``. Backends are chosen per tick: grid (enabled, supported,
    fits, Euler), then worker (enabled and ready), then inline.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        offloaded: Optional[OffloadedBackend] = None,
        gpu: Optional[GpuParallelBackend] = None,
        inline: Optional[InlineBackend] = None,
    ):
        self.config = config or Config()
        self.store = BodyStore()
        self.time = 0.0
        self.step_count = 0
        self.state = CoordinatorState.IDLE
        self.step_mode = False
        self.dropped_ticks = 0
        self.selected_id: Optional[int] = None
        self.dragged_id: Optional[int] = None
        self.last_stats: Optional[StepStats] = None
        self.last_backend: Optional[str] = None
        self.bookmarks: List[dict] = []
        self.analyzer = EnergyAnalyzer(G=self.config.gravity_g, history_length=self.config.analysis_history)

        self.inline = inline or InlineBackend()
        self.offloaded = offloaded
        self.gpu = gpu
        if self.offloaded is None and self.config.use_worker:
            self.offloaded = OffloadedBackend()
        if self.gpu is None and self.config.use_gpu:
            self.gpu = GpuParallelBackend(
                capacity=self.config.gpu_capacity, backend_name=self.config.array_backend
            )

        self._rng = np.random.default_rng(self.config.seed)
        self._pending: Optional[Tuple[Future, ExecutionBackend, object, StepConfig]] = None
        self._last_sample_time: Optional[float] = None
        self._render_dirty = False
        self._closed = False
        self._callbacks: List[Callable[["StepCoordinator", StepResult], None]] = []

    # ------------------------------------------------------------------
    # Scenario setup

    def load_scenario(self, name: Optional[str] = None, seed: Optional[int] = None) -> List[int]:
        """Replace the bodies with a preset's initial conditions."""
        name = name or self.config.scenario
        preset = get_preset(name, seed=seed if seed is not None else self.config.seed)
        self.config.scenario = preset.name
        self.set_gravity(preset.gravity_g)
        return self.load_records(preset.generate())

    def load_records(self, records: Sequence[dict], time: float = 0.0) -> List[int]:
        """Replace all bodies and reset time, selection and the energy baseline."""
        self._settle()
        ids = self.store.replace(records)
        self.time = float(time)
        self.step_count = 0
        self.selected_id = None
        self.dragged_id = None
        self.last_stats = None
        self._reset_analysis()
        self._render_dirty = True
        return ids

    # ------------------------------------------------------------------
    # Stepping

    @property
    def in_flight(self) -> bool:
        return self.state is CoordinatorState.STEP_IN_FLIGHT

    def on_step(self, callback: Callable[["StepCoordinator", StepResult], None]) -> None:
        """Register ``callback(coordinator, result)`` to run after every commit."""
        self._callbacks.append(callback)

    def tick(self) -> bool:
        """Automatic step request from the external loop.

        Returns True if a step was dispatched. Suppressed in step mode and
        dropped (not queued) while another step is in flight.
        """
        self.poll()
        if self.step_mode or self._closed:
            return False
        return self._request_step()

    def step_once(self) -> bool:
        """Manual single step through the same dispatch path; waits for the commit."""
        self.poll()
        if self._closed or not self._request_step():
            return False
        self.wait()
        return True

    def run(self, n_steps: int) -> None:
        """Run ``n_steps`` steps back to back, waiting for each."""
        for _ in range(n_steps):
            if not self.step_once():
                break

    def poll(self) -> bool:
        """Commit the in-flight step if its result has arrived."""
        if self._pending is None:
            return False
        self._check_pending_worker()
        if not self._pending[0].done():
            return False
        return self._complete()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight step (if any) has been committed."""
        if self._pending is None:
            return False
        deadline = None if timeout is None else walltime.monotonic() + timeout
        while True:
            self._check_pending_worker()
            interval = WORKER_CHECK_INTERVAL
            if deadline is not None:
                interval = max(0.0, min(interval, deadline - walltime.monotonic()))
            done, _ = wait_futures([self._pending[0]], timeout=interval)
            if done:
                return self._complete()
            if deadline is not None and walltime.monotonic() >= deadline:
                raise TimeoutError("Physics step did not finish in time")

    def _check_pending_worker(self) -> None:
        future, backend = self._pending[0], self._pending[1]
        if not future.done() and backend is self.offloaded:
            backend.check_worker()

    def _step_config(self) -> StepConfig:
        return StepConfig(
            sim_speed=self.config.sim_speed,
            time_direction=self.config.time_direction,
            G=self.config.gravity_g,
            softening=self.config.softening,
            integrator=self.config.integrator,
            collisions_enabled=self.config.enable_collisions,
            excluded_index=self.store.index_of(self.dragged_id),
            current_time=self.time,
            base_dt=self.config.base_dt,
        )

    def select_backend(self, n_bodies: int, config: StepConfig) -> ExecutionBackend:
        if self.config.use_gpu and self.gpu is not None and self.gpu.can_run(n_bodies, config):
            return self.gpu
        if self.config.use_worker and self.offloaded is not None and self.offloaded.ready:
            return self.offloaded
        return self.inline

    def _request_step(self) -> bool:
        if self.in_flight:
            self.dropped_ticks += 1
            return False
        snapshot = self.store.snapshot()
        config = self._step_config()
        backend = self.select_backend(snapshot.n_bodies, config)
        try:
            future = backend.submit(snapshot, config)
        except FALLBACK_ERRORS as exc:
            if backend is self.inline:
                raise
            future = self._fallback_future(backend, exc, snapshot, config)
            backend = self.inline

        self._pending = (future, backend, snapshot, config)
        self.state = CoordinatorState.STEP_IN_FLIGHT
        if future.done():
            self._complete()
        return True

    def _fallback_future(self, backend, exc, snapshot, config) -> Future:
        if isinstance(exc, BackendUnavailableError):
            backend.mark_unsupported()
        warnings.warn(f"{backend.name} physics step failed ({exc}); falling back to inline physics")
        return self.inline.submit(snapshot, config)

    def _complete(self) -> bool:
        future, backend, snapshot, config = self._pending
        self._pending = None
        self.state = CoordinatorState.IDLE
        if future.cancelled() or self._closed:
            return False

        exc = future.exception()
        if exc is not None:
            if backend is self.inline or not isinstance(exc, FALLBACK_ERRORS):
                raise exc
            result = self._fallback_future(backend, exc, snapshot, config).result()
            backend = self.inline
        else:
            result = future.result()
        self._commit(result, backend.name)
        return True

    def _commit(self, result: StepResult, backend_name: str) -> None:
        # A body being dragged keeps whatever the user set while the step ran.
        held = None
        if self.dragged_id in self.store:
            body = self.store.get(self.dragged_id)
            held = (body.position.copy(), body.velocity.copy())

        removed_ids = self.store.commit(result.state, result.removed_indices)
        if self.selected_id in removed_ids:
            self.selected_id = None
        if self.dragged_id in removed_ids:
            self.dragged_id = None
        if held is not None and self.dragged_id in self.store:
            body = self.store.get(self.dragged_id)
            body.position, body.velocity = held

        self.time = result.stats.time
        self.step_count += 1
        self.last_stats = result.stats
        self.last_backend = backend_name
        self._render_dirty = True

        if self._last_sample_time is None or abs(self.time - self._last_sample_time) >= self.config.stats_interval:
            self.sample_energy()

        for callback in self._callbacks:
            callback(self, result)

    def _settle(self) -> None:
        """Commit any in-flight step before mutating the store directly."""
        if self._pending is not None:
            self.wait()

    def consume_render_dirty(self) -> bool:
        """Return whether new state is ready for the renderer and clear the flag."""
        dirty, self._render_dirty = self._render_dirty, False
        return dirty

    # ------------------------------------------------------------------
    # Controls

    def set_step_mode(self, enabled: bool) -> None:
        self.step_mode = bool(enabled)

    def reverse_time(self) -> int:
        self.config.time_direction = -self.config.time_direction
        return self.config.time_direction

    def set_time_direction(self, direction: int) -> None:
        if direction not in (1, -1):
            raise ValueError(f"time direction must be +1 or -1, got {direction}")
        self.config.time_direction = direction

    def set_sim_speed(self, speed: float) -> None:
        if not speed > 0:
            raise ValueError(f"sim speed must be > 0, got {speed}")
        self.config.sim_speed = float(speed)

    def set_gravity(self, G: float) -> None:
        """Change G. The energy baseline is reset since totals are no longer comparable."""
        self.config.gravity_g = float(G)
        self.analyzer.G = self.config.gravity_g
        self._reset_analysis()

    def set_integrator(self, name: str) -> None:
        name = name.upper()
        if name not in ("EULER", "RK4"):
            raise ValueError(f"Unknown integrator: {name}")
        self.config.integrator = name

    def set_collisions(self, enabled: bool) -> None:
        self.config.enable_collisions = bool(enabled)

    def set_use_worker(self, enabled: bool) -> None:
        self.config.use_worker = bool(enabled)
        if enabled and self.offloaded is None:
            self.offloaded = OffloadedBackend()

    def set_use_gpu(self, enabled: bool) -> None:
        self.config.use_gpu = bool(enabled)
        if enabled and self.gpu is None:
            self.gpu = GpuParallelBackend(
                capacity=self.config.gpu_capacity, backend_name=self.config.array_backend
            )

    # ------------------------------------------------------------------
    # Selection and dragging

    def select(self, body_id: Optional[int]) -> None:
        if body_id is not None and body_id not in self.store:
            raise KeyError(f"No body with id {body_id}")
        self.selected_id = body_id

    @property
    def selected_index(self) -> Optional[int]:
        return self.store.index_of(self.selected_id)

    def begin_drag(self, body_id: int) -> None:
        """Put a body under manual control; steps neither move nor collide it."""
        if body_id not in self.store:
            raise KeyError(f"No body with id {body_id}")
        self.dragged_id = body_id

    def move_body(self, body_id: int, position, velocity=None) -> None:
        body = self.store.get(body_id)
        body.position = np.asarray(position, dtype=np.float64).reshape(3)
        if velocity is not None:
            body.velocity = np.asarray(velocity, dtype=np.float64).reshape(3)
        self._render_dirty = True

    def end_drag(self) -> None:
        self.dragged_id = None

    # ------------------------------------------------------------------
    # Body editing

    def add_body(self, position, velocity, mass: float, color: int = DEFAULT_COLOR) -> int:
        self._settle()
        body_id = self.store.add(position, velocity, mass, color)
        self._render_dirty = True
        return body_id

    def add_random_body(self) -> int:
        record = random_body(self._rng)
        self._settle()
        body_id = self.store.add_record(record)
        self._render_dirty = True
        return body_id

    def delete_body(self, body_id: int) -> int:
        """Remove a body and return the index it occupied."""
        self._settle()
        index = self.store.remove(body_id)
        if self.selected_id == body_id:
            self.selected_id = None
        if self.dragged_id == body_id:
            self.dragged_id = None
        self._render_dirty = True
        return index

    def set_body_speed(self, body_id: int, speed: float) -> None:
        """Rescale a body's velocity to ``speed`` keeping its direction.

        A body at rest gets the requested speed along +x.
        """
        if speed < 0:
            raise ValueError(f"speed must be >= 0, got {speed}")
        self._settle()
        body = self.store.get(body_id)
        current = body.speed
        if current > SPEED_EPSILON:
            body.velocity = body.velocity * (speed / current)
        else:
            body.velocity = np.array([speed, 0.0, 0.0])
        self._render_dirty = True

    def set_body_mass(self, body_id: int, mass: float) -> None:
        if not mass > 0:
            raise ValueError(f"Body mass must be > 0, got {mass}")
        self._settle()
        self.store.get(body_id).mass = float(mass)

    # ------------------------------------------------------------------
    # Bookmarks

    def save_bookmark(self) -> int:
        self._settle()
        self.bookmarks.append({
            "time": self.time,
            "bodies": copy.deepcopy(self.store.to_records()),
            "timestamp": walltime.time(),
        })
        return len(self.bookmarks) - 1

    def restore_bookmark(self, index: int) -> None:
        bookmark = self.bookmarks[index]
        self.load_records(copy.deepcopy(bookmark["bodies"]), time=bookmark["time"])

    def delete_bookmark(self, index: int) -> None:
        del self.bookmarks[index]

    # ------------------------------------------------------------------
    # Analysis

    def _reset_analysis(self) -> None:
        self.analyzer.reset()
        self._last_sample_time = None

    def sample_energy(self) -> EnergySample:
        """Take an energy sample now; the first one after a reset is the drift baseline."""
        self._last_sample_time = self.time
        return self.analyzer.sample(self.store.snapshot(), self.time, self.selected_index)

    @property
    def drift_percent(self) -> Optional[float]:
        sample = self.analyzer.last_sample
        return sample.drift if sample is not None else None

    @property
    def energy_history(self) -> List[dict]:
        return list(self.analyzer.history)

    def center_of_mass(self):
        """Mass-weighted (position, velocity) of the live system."""
        return center_of_mass(self.store.snapshot())

    def predict_collisions(self, horizon: float = 100.0) -> List[dict]:
        """Pairs on a linear collision course, keyed by body id."""
        warnings_out = predict_collisions(self.store.snapshot(), horizon)
        for item in warnings_out:
            i, j = item["bodies"]
            item["bodies"] = (self.store.id_at(i), self.store.id_at(j))
        return warnings_out

    # ------------------------------------------------------------------
    # Import / export

    @property
    def bodies(self) -> List[dict]:
        return self.store.to_records()

    def export_state(self) -> dict:
        self._settle()
        return export_state(
            self.store.to_records(),
            time=self.time,
            gravity_g=self.config.gravity_g,
            scenario=self.config.scenario,
            physics_mode=self.config.integrator,
            enable_collisions=self.config.enable_collisions,
            sim_speed=self.config.sim_speed,
            trail_length=self.config.trail_length,
        )

    def import_state(self, data: dict) -> List[int]:
        """Validate ``data`` fully, then replace the simulation with it."""
        parsed = parse_state(data)
        self._settle()
        settings = parsed["settings"]
        self.config.scenario = parsed["scenario"]
        self.config.integrator = settings["physicsMode"]
        self.config.enable_collisions = settings["enableCollisions"]
        self.config.trail_length = settings["trailLength"]
        if settings["simSpeed"] > 0:
            self.config.sim_speed = settings["simSpeed"]
        self.set_gravity(parsed["gravityG"])
        return self.load_records(parsed["bodies"], time=parsed["time"])

    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release backends. No commit or callback happens afterwards."""
        if self._closed:
            return
        self._closed = True
        if self._pending is not None:
            self._pending[0].cancel()
            self._pending = None
        self.state = CoordinatorState.IDLE
        for backend in (self.offloaded, self.gpu, self.inline):
            if backend is not None:
                backend.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
