"""Tests for the body store and the force model."""

import numpy as np
import pytest
from threebody_sim.backends.numpy_backend import NumPyBackend
from threebody_sim.physics.body import Body, BodyStore, SimulationState
from threebody_sim.physics.force_calculator import ForceCalculator


def make_store(n=3):
    store = BodyStore()
    ids = [store.add((float(i), 0.0, 0.0), (0.0, float(i), 0.0), 1.0 + i, color=i) for i in range(n)]
    return store, ids


def test_body_rejects_non_positive_mass():
    with pytest.raises(ValueError):
        Body(1, (0, 0, 0), (0, 0, 0), 0.0)
    with pytest.raises(ValueError):
        Body(1, (0, 0, 0), (0, 0, 0), -2.0)


def test_store_ids_are_stable_across_removal():
    """Removing a body shifts indices but never changes ids."""
    store, ids = make_store(4)

    index = store.remove(ids[1])

    assert index == 1
    assert len(store) == 3
    assert ids[1] not in store
    assert store.index_of(ids[0]) == 0
    assert store.index_of(ids[2]) == 1
    assert store.index_of(ids[3]) == 2
    assert store.get(ids[3]).mass == 4.0


def test_store_remove_unknown_id():
    store, _ = make_store(1)
    with pytest.raises(KeyError):
        store.remove(999)


def test_snapshot_is_a_copy():
    store, ids = make_store(2)
    snapshot = store.snapshot()
    snapshot.positions[0, 0] = 100.0

    assert store.get(ids[0]).position[0] == 0.0
    assert snapshot.colors == [0, 1]


def test_commit_applies_removals_descending():
    """Rows of the step result go to the survivors in order."""
    store, ids = make_store(5)
    state = store.snapshot()
    state.remove(3)
    state.remove(1)
    state.positions += 10.0

    removed_ids = store.commit(state, [1, 3])

    assert sorted(removed_ids) == sorted([ids[1], ids[3]])
    assert store.ids == [ids[0], ids[2], ids[4]]
    assert np.allclose([b.position[0] for b in store], [10.0, 12.0, 14.0])


def test_commit_length_mismatch():
    store, _ = make_store(3)
    state = store.snapshot()
    state.remove(0)
    with pytest.raises(RuntimeError):
        store.commit(state, [])


def test_state_records_round_trip():
    store, _ = make_store(2)
    state = SimulationState.from_records(store.to_records())

    assert state.n_bodies == 2
    assert np.allclose(state.masses, [1.0, 2.0])
    assert state.to_records() == store.to_records()


def test_force_calculation():
    """Two unit masses at distance 1 attract each other along x."""
    backend = NumPyBackend()
    forces = ForceCalculator(G=1.0, softening=0.1)
    positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    masses = np.array([1.0, 1.0])

    acc = backend.to_numpy(forces.compute_accelerations(positions, masses, backend))

    expected = 1.0 / (1.0 + 0.01) ** 1.5
    assert acc[0, 0] == pytest.approx(expected)
    assert acc[1, 0] == pytest.approx(-expected)
    assert np.allclose(acc[:, 1:], 0.0)


def test_force_finite_on_exact_overlap():
    """Softening keeps the sum finite when two bodies coincide."""
    backend = NumPyBackend()
    forces = ForceCalculator(G=1.0, softening=0.1)
    positions = np.zeros((2, 3))
    masses = np.array([1.0, 1.0])

    acc = backend.to_numpy(forces.compute_accelerations(positions, masses, backend))

    assert np.all(np.isfinite(acc))
    assert np.allclose(acc, 0.0)


def test_force_excluded_body_has_zero_acceleration():
    """The excluded body does not accelerate but still attracts the others."""
    backend = NumPyBackend()
    forces = ForceCalculator(G=1.0, softening=0.1)
    positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
    masses = np.array([5.0, 1.0, 1.0])

    full = backend.to_numpy(forces.compute_accelerations(positions, masses, backend))
    excluded = backend.to_numpy(forces.compute_accelerations(positions, masses, backend, excluded_index=0))

    assert np.allclose(excluded[0], 0.0)
    assert np.allclose(excluded[1:], full[1:])
