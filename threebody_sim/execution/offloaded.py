"""Execution backend that runs steps on a persistent worker thread."""

import queue
import threading
import warnings
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from threebody_sim.execution.base import (
    BackendUnavailableError,
    ExecutionBackend,
    StepConfig,
    StepInFlightError,
    StepResult,
)
from threebody_sim.execution.inline import run_physics_step
from threebody_sim.execution import protocol
from threebody_sim.physics.body import SimulationState


class PhysicsWorker:
    """Worker side of the channel.

    Owns a daemon thread that announces READY once, then answers every UPDATE
    with exactly one RESULT (or ERROR) through ``post_message``.
    """

    def __init__(self, post_message: Callable[[str], None], name: str = "physics-worker"):
        self._post = post_message
        self._inbox: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def post_message(self, payload: str) -> None:
        if not self.alive:
            raise BackendUnavailableError("Physics worker thread is not running")
        self._inbox.put(payload)

    def terminate(self, timeout: float = 2.0) -> None:
        self._inbox.put(None)
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        self._post(protocol.encode({"type": protocol.READY}))
        while True:
            payload = self._inbox.get()
            if payload is None:
                break
            self._post(self._handle(payload))

    def _handle(self, payload: str) -> str:
        try:
            message = protocol.decode(payload)
            if message["type"] != protocol.UPDATE:
                raise protocol.ProtocolError(f"Unexpected message type {message['type']}")
            state = SimulationState.from_records(message.get("bodies", []))
            config = protocol.config_from_message(message.get("config", {}))
            return protocol.result_message(run_physics_step(state, config))
        except Exception as exc:
            return protocol.encode({"type": protocol.ERROR, "message": f"{type(exc).__name__}: {exc}"})


class OffloadedBackend(ExecutionBackend):
    """Client side of the worker channel.

    At most one request may be outstanding; ``submit`` raises
    ``StepInFlightError`` otherwise. Any worker failure flips ``supported`` to
    False for good and callers are expected to fall back to the inline backend.
    """

    def __init__(
        self,
        step_timeout: float = 30.0,
        worker_factory: Callable[[Callable[[str], None]], PhysicsWorker] = PhysicsWorker,
    ):
        super().__init__()
        self.step_timeout = step_timeout
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._closed = False
        self._worker: Optional[PhysicsWorker] = None
        try:
            self._worker = worker_factory(self._on_message)
            self._worker.start()
        except Exception as exc:
            warnings.warn(f"Physics worker could not be started, using inline physics: {exc}")
            self._worker = None
            self.mark_unsupported()

    @property
    def name(self) -> str:
        return "offloaded"

    @property
    def ready(self) -> bool:
        return (
            self.supported
            and not self._closed
            and self._ready.is_set()
            and self._worker is not None
            and self._worker.alive
        )

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout) and self.ready

    def _on_message(self, payload: str) -> None:
        # Runs on the worker thread.
        try:
            message = protocol.decode(payload)
        except protocol.ProtocolError as exc:
            self._fail(BackendUnavailableError(str(exc)))
            return

        if message["type"] == protocol.READY:
            self._ready.set()
            return

        with self._lock:
            if self._closed:
                return
            future, self._pending = self._pending, None
        if future is None or future.cancelled():
            return

        if message["type"] == protocol.RESULT:
            try:
                future.set_result(protocol.result_from_message(message))
            except (KeyError, TypeError, ValueError) as exc:
                self.mark_unsupported()
                future.set_exception(BackendUnavailableError(f"Malformed worker result: {exc}"))
        else:
            self.mark_unsupported()
            future.set_exception(BackendUnavailableError(message.get("message", "Physics worker error")))

    def _fail(self, error: Exception) -> None:
        self.mark_unsupported()
        with self._lock:
            future, self._pending = self._pending, None
        if future is not None and not future.done():
            future.set_exception(error)

    def check_worker(self) -> bool:
        """Fail the outstanding request if the worker thread has died.

        Returns True when the worker is gone. A dead worker never answers, so
        without this the pending future would stay unresolved forever.
        """
        if self._closed or (self._worker is not None and self._worker.alive):
            return False
        self._fail(BackendUnavailableError("Physics worker thread died"))
        return True

    def submit(self, state: SimulationState, config: StepConfig) -> Future:
        if not self.ready:
            raise BackendUnavailableError("Physics worker is not ready")
        with self._lock:
            if self._pending is not None:
                raise StepInFlightError("A physics step is already in flight")
            future = Future()
            self._pending = future
        try:
            self._worker.post_message(protocol.update_message(state, config))
        except Exception as exc:
            with self._lock:
                self._pending = None
            self.mark_unsupported()
            raise BackendUnavailableError(f"Could not reach physics worker: {exc}") from exc
        return future

    def step(self, state: SimulationState, config: StepConfig) -> StepResult:
        future = self.submit(state, config)
        try:
            return future.result(timeout=self.step_timeout)
        except FutureTimeoutError as exc:
            self._fail(BackendUnavailableError("Physics worker timed out"))
            raise BackendUnavailableError("Physics worker timed out") from exc

    def close(self) -> None:
        with self._lock:
            self._closed = True
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
        if self._worker is not None:
            self._worker.terminate()
            self._worker = None
        self._ready.clear()
