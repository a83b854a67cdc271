"""Tests for compute backends."""

import pytest
import numpy as np
from threebody_sim.backends.factory import INSTALL_HINTS, get_backend, list_available_backends
from threebody_sim.backends.numpy_backend import NumPyBackend


def test_numpy_backend_basic():
    """Test basic NumPy backend operations."""
    backend = NumPyBackend()

    arr = backend.array([1, 2, 3])
    assert backend.to_numpy(arr).shape == (3,)

    zeros = backend.zeros((3, 3))
    assert zeros.dtype == np.float64
    assert np.allclose(backend.to_numpy(zeros), 0)

    a = backend.array([1.0, 2.0, 3.0])
    b = backend.array([4.0, 5.0, 6.0])

    assert np.allclose(backend.to_numpy(backend.add(a, b)), [5, 7, 9])
    assert np.allclose(backend.to_numpy(backend.multiply(a, b)), [4, 10, 18])
    assert np.allclose(backend.to_numpy(backend.subtract(1.0, a)), [0, -1, -2])
    assert np.allclose(backend.to_numpy(backend.sqrt(backend.square(a))), [1, 2, 3])


def test_numpy_backend_shapes():
    """Reshape, stack and eye as used by the pairwise kernels."""
    backend = NumPyBackend()
    a = backend.array([1.0, 2.0, 3.0])

    assert backend.expand_dims(a, 0).shape == (1, 3)
    assert backend.reshape(a, (3, 1)).shape == (3, 1)
    assert backend.stack([a, a], axis=1).shape == (3, 2)
    assert np.allclose(backend.eye(3), np.eye(3))


def test_pairwise_differences_orientation():
    backend = NumPyBackend()
    positions = backend.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
    diff = backend.pairwise_differences(positions)
    assert diff.shape == (2, 2, 3)
    # diff[i, j] points from body i to body j
    assert np.allclose(diff[0, 1], [1.0, 2.0, 3.0])
    assert np.allclose(diff[1, 0], [-1.0, -2.0, -3.0])
    assert np.allclose(diff[0, 0], 0.0)


def test_numpy_synchronize_is_noop():
    NumPyBackend().synchronize()


def test_backend_factory():
    backends = list_available_backends()
    assert backends[0] == "numpy"
    assert get_backend("numpy").name == "numpy"
    assert get_backend("NumPy").name == "numpy"
    assert get_backend() is not None
    assert get_backend(prefer_gpu=False).name == "numpy"


def test_backend_factory_unknown():
    with pytest.raises(ValueError, match="Unknown backend"):
        get_backend("fortran")


@pytest.mark.parametrize("name", sorted(INSTALL_HINTS))
def test_missing_optional_backend_names_install_hint(name):
    if name in list_available_backends():
        pytest.skip(f"{name} installed")
    with pytest.raises(ValueError, match="pip install"):
        get_backend(name)


@pytest.mark.parametrize("name", ["jax", "pytorch", "cupy"])
def test_optional_backend_matches_numpy(name):
    """Optional backends give the same pairwise sums as NumPy."""
    if name not in list_available_backends():
        pytest.skip(f"{name} not installed")
    try:
        backend = get_backend(name)
    except Exception as exc:
        pytest.skip(f"{name} unusable here: {exc}")

    data = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 2.0]], dtype=np.float32)
    arr = backend.array(data)
    diff = backend.pairwise_differences(arr)
    dist = backend.sqrt(backend.sum(backend.square(diff), axis=2))
    backend.synchronize()
    assert np.allclose(backend.to_numpy(dist), [[0.0, 3.0], [3.0, 0.0]], atol=1e-5)
