"""Physics core: body state, force model, integrators, collisions and energy."""

from threebody_sim.physics.body import Body, BodyStore, SimulationState
from threebody_sim.physics.force_calculator import ForceCalculator
from threebody_sim.physics.collisions import CollisionResolver, remap_index
from threebody_sim.physics.diagnostics import EnergyAnalyzer, compute_energies

__all__ = [
    "Body",
    "BodyStore",
    "SimulationState",
    "ForceCalculator",
    "CollisionResolver",
    "remap_index",
    "EnergyAnalyzer",
    "compute_energies",
]
