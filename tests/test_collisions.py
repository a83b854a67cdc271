"""Tests for merges, bounces and removal ordering."""

import numpy as np
import pytest
from threebody_sim.physics.body import SimulationState
from threebody_sim.physics.collisions import CollisionResolver, collision_radius, remap_index


def kinetic_energy(state):
    return 0.5 * np.sum(state.masses * np.sum(state.velocities ** 2, axis=1))


def head_on_pair(v=1.0):
    """Unit masses at x = -0.3 and x = +0.3: overlapping, but outside the merge radius."""
    return SimulationState(
        positions=[[-0.3, 0.0, 0.0], [0.3, 0.0, 0.0]],
        velocities=[[v, 0.0, 0.0], [-v, 0.0, 0.0]],
        masses=[1.0, 1.0],
    )


def test_collision_radius():
    assert collision_radius(1.0) == pytest.approx(0.5)
    assert collision_radius(8.0) == pytest.approx(1.0)


def test_merge_conserves_momentum_and_mass():
    state = SimulationState(
        positions=[[0.0, 0.0, 0.0], [0.05, 0.0, 0.0]],
        velocities=[[1.0, 0.0, 0.0], [0.0, -2.0, 0.5]],
        masses=[2.0, 3.0],
    )
    momentum_before = np.sum(state.masses[:, None] * state.velocities, axis=0)
    com_before = np.sum(state.masses[:, None] * state.positions, axis=0) / 5.0

    report = CollisionResolver().resolve(state)

    assert report.merges == 1
    assert report.removed_indices == [1]
    assert state.n_bodies == 1
    assert state.masses[0] == pytest.approx(5.0)
    assert np.allclose(state.masses[0] * state.velocities[0], momentum_before)
    assert np.allclose(state.positions[0], com_before)


def test_bounce_with_restitution_loses_energy():
    state = head_on_pair()
    ke_before = kinetic_energy(state)

    report = CollisionResolver(restitution=0.95).resolve(state)

    assert report.bounces == 1
    assert report.removed_indices == []
    assert kinetic_energy(state) < ke_before
    assert kinetic_energy(state) == pytest.approx(ke_before * 0.95 ** 2)
    # Bodies now separate
    assert state.velocities[0, 0] < 0 < state.velocities[1, 0]


def test_perfectly_elastic_bounce_conserves_energy():
    state = head_on_pair()
    ke_before = kinetic_energy(state)
    momentum_before = np.sum(state.masses[:, None] * state.velocities, axis=0)

    CollisionResolver(restitution=1.0).resolve(state)

    assert kinetic_energy(state) == pytest.approx(ke_before)
    assert np.allclose(np.sum(state.masses[:, None] * state.velocities, axis=0), momentum_before)


def test_bounce_separates_by_half_overlap():
    state = head_on_pair()
    CollisionResolver().resolve(state)

    # Overlap was 1.0 - 0.6; each body moves out by half of it
    assert state.positions[0, 0] == pytest.approx(-0.5)
    assert state.positions[1, 0] == pytest.approx(0.5)


def test_separating_pair_gets_no_impulse():
    state = head_on_pair(v=-1.0)
    velocities_before = state.velocities.copy()

    report = CollisionResolver().resolve(state)

    assert report.bounces == 0
    assert np.array_equal(state.velocities, velocities_before)


def test_excluded_body_is_not_collided():
    state = SimulationState(
        positions=[[0.0, 0.0, 0.0], [0.01, 0.0, 0.0]],
        velocities=np.zeros((2, 3)),
        masses=[1.0, 1.0],
    )
    report = CollisionResolver().resolve(state, excluded_index=1)

    assert report.merges == 0
    assert state.n_bodies == 2


def test_three_simultaneous_merges_keep_order():
    """Removals applied in descending order leave survivors in their original order."""
    offsets = [0.0, 0.05, 10.0, 20.0, 20.05, 30.0, 30.05]
    state = SimulationState(
        positions=[[x, 0.0, 0.0] for x in offsets],
        velocities=np.zeros((7, 3)),
        masses=[1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0],
        colors=[0, 1, 2, 3, 4, 5, 6],
    )
    total_mass = np.sum(state.masses)

    report = CollisionResolver().resolve(state)

    assert report.merges == 3
    assert report.removed_indices == [6, 4, 1]
    assert state.colors == [0, 2, 3, 5]
    assert np.allclose(state.masses, [3.0, 3.0, 9.0, 13.0])
    assert np.sum(state.masses) == pytest.approx(total_mass)


def test_remap_index():
    removed = [6, 4, 1]
    assert remap_index(0, removed) == 0
    assert remap_index(2, removed) == 1
    assert remap_index(5, removed) == 3
    assert remap_index(4, removed) is None
    assert remap_index(None, removed) is None
