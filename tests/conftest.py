"""Shared fixtures."""

import pytest

from threebody_sim.execution import protocol
from threebody_sim.execution.inline import run_physics_step
from threebody_sim.physics.body import SimulationState


class ManualWorker:
    """Stand-in for the physics worker thread that answers only when told to."""

    def __init__(self, post_message, name="manual-worker"):
        self._post = post_message
        self.inbox = []
        self.alive = False

    def start(self):
        self.alive = True
        self._post(protocol.encode({"type": protocol.READY}))

    def post_message(self, payload):
        self.inbox.append(payload)

    def terminate(self, timeout=2.0):
        self.alive = False

    def respond(self):
        """Serve the oldest request the way the real worker would."""
        message = protocol.decode(self.inbox.pop(0))
        state = SimulationState.from_records(message["bodies"])
        config = protocol.config_from_message(message["config"])
        self._post(protocol.result_message(run_physics_step(state, config)))

    def fail(self, text="boom"):
        self.inbox.pop(0)
        self._post(protocol.encode({"type": protocol.ERROR, "message": text}))


@pytest.fixture
def manual_workers():
    """Factory for ManualWorker; created workers are collected in ``.created``."""
    created = []

    def factory(post_message):
        worker = ManualWorker(post_message)
        created.append(worker)
        return worker

    factory.created = created
    return factory
