"""Execution backends: interchangeable ways of running one physics step."""

from threebody_sim.execution.base import (
    BASE_DT,
    BackendUnavailableError,
    CapacityExceededError,
    ExecutionBackend,
    StepConfig,
    StepInFlightError,
    StepResult,
    StepStats,
    UnsupportedIntegratorError,
)
from threebody_sim.execution.inline import InlineBackend, run_physics_step
from threebody_sim.execution.offloaded import OffloadedBackend, PhysicsWorker
from threebody_sim.execution.gpu_parallel import GpuParallelBackend, GridBuffers

__all__ = [
    "BASE_DT",
    "BackendUnavailableError",
    "CapacityExceededError",
    "ExecutionBackend",
    "StepConfig",
    "StepInFlightError",
    "StepResult",
    "StepStats",
    "UnsupportedIntegratorError",
    "InlineBackend",
    "run_physics_step",
    "OffloadedBackend",
    "PhysicsWorker",
    "GpuParallelBackend",
    "GridBuffers",
]
