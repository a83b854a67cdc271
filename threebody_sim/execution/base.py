"""Step contract shared by every execution backend."""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from threebody_sim.physics.body import SimulationState
from threebody_sim.physics.force_calculator import SOFTENING_DEFAULT

BASE_DT = 0.01


class BackendUnavailableError(RuntimeError):
    """The backend cannot run steps any more (worker died, device missing)."""


class CapacityExceededError(ValueError):
    """More bodies than the backend can hold."""


class UnsupportedIntegratorError(ValueError):
    """The backend does not implement the requested integrator."""


class StepInFlightError(RuntimeError):
    """A step was submitted while another one is still outstanding."""


@dataclass
class StepConfig:
    """Parameters for one step.

    ``dt`` is derived as ``base_dt * sim_speed * time_direction`` so its sign
    encodes playback direction.
    """
    sim_speed: float = 1.0
    time_direction: int = 1
    G: float = 1.0
    softening: float = SOFTENING_DEFAULT
    integrator: str = "EULER"
    collisions_enabled: bool = False
    excluded_index: Optional[int] = None
    current_time: float = 0.0
    base_dt: float = BASE_DT

    @property
    def dt(self) -> float:
        return self.base_dt * self.sim_speed * self.time_direction


@dataclass
class StepStats:
    time: float
    ke: float
    pe: float
    total: float
    body_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StepResult:
    state: SimulationState
    stats: StepStats
    removed_indices: List[int] = field(default_factory=list)


class ExecutionBackend(ABC):
    """One way of running a physics step.

    ``submit`` returns a future so asynchronous backends fit the same seam;
    synchronous ones resolve it before returning.
    """

    def __init__(self):
        self._supported = True

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def supported(self) -> bool:
        return self._supported

    def mark_unsupported(self) -> None:
        self._supported = False

    @property
    def ready(self) -> bool:
        """True when the backend can accept a step right now."""
        return self.supported

    def can_run(self, n_bodies: int, config: StepConfig) -> bool:
        """Capability probe: body count and integrator constraints."""
        return self.ready

    @abstractmethod
    def step(self, state: SimulationState, config: StepConfig) -> StepResult:
        """Run one step on a private copy of ``state`` and return the result."""
        pass

    def submit(self, state: SimulationState, config: StepConfig) -> Future:
        future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(self.step(state, config))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def close(self) -> None:
        """Release resources. Safe to call more than once."""
