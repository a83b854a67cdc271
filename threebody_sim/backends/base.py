"""Abstract base class for array compute backends."""

from abc import ABC, abstractmethod
from typing import Any, Sequence, Tuple
import numpy as np


class Backend(ABC):
    """Array library that the pairwise gravity sums run on.

    The inline step pipeline always uses NumPy in float64. The grid kernel
    accepts any backend; element-wise arithmetic goes through Python operators,
    which every supported library overloads, including scalar-first forms such
    as ``1.0 - eye``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this backend."""
        pass

    @property
    @abstractmethod
    def device(self) -> str:
        """Return the device type (e.g., 'cpu', 'cuda:0')."""
        pass

    @abstractmethod
    def array(self, data: Any, dtype=None) -> Any:
        """Upload host data (list or NumPy array) to the backend."""
        pass

    @abstractmethod
    def to_numpy(self, array: Any) -> np.ndarray:
        """Read an array back to host memory. Blocks until it is computed."""
        pass

    @abstractmethod
    def zeros(self, shape: Tuple[int, ...], dtype=None) -> Any:
        pass

    @abstractmethod
    def sum(self, array: Any, axis: int = None) -> Any:
        pass

    @abstractmethod
    def sqrt(self, array: Any) -> Any:
        pass

    @abstractmethod
    def reshape(self, array: Any, newshape: Tuple[int, ...]) -> Any:
        pass

    @abstractmethod
    def expand_dims(self, array: Any, axis: int) -> Any:
        """Insert a new axis, e.g. (n,) -> (n, 1) for axis=1."""
        pass

    @abstractmethod
    def stack(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        """Stack arrays along a new axis, e.g. stack([x, y, z], axis=1) -> (n, 3)."""
        pass

    @abstractmethod
    def concatenate(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        """Join arrays along an existing axis."""
        pass

    @abstractmethod
    def eye(self, n: int) -> Any:
        """Identity matrix (n, n) in the backend's working precision."""
        pass

    def add(self, a: Any, b: Any) -> Any:
        return a + b

    def subtract(self, a: Any, b: Any) -> Any:
        return a - b

    def multiply(self, a: Any, b: Any) -> Any:
        return a * b

    def divide(self, a: Any, b: Any) -> Any:
        return a / b

    def square(self, array: Any) -> Any:
        return array * array

    def pairwise_differences(self, positions: Any) -> Any:
        """(n, d) positions -> (n, n, d) array with ``diff[i, j] = r_j - r_i``."""
        n, dim = positions.shape[0], positions.shape[1]
        return self.reshape(positions, (1, n, dim)) - self.reshape(positions, (n, 1, dim))

    def synchronize(self) -> None:
        """Wait for queued device work. No-op for host backends."""


class ArrayModuleBackend(Backend):
    """Backend over a library that follows the NumPy array API.

    Subclasses set ``xp`` to the module (``numpy``, ``cupy``, ``jax.numpy``)
    and ``float_dtype`` to their working precision.
    """

    xp: Any = None
    float_dtype: Any = None

    def array(self, data: Any, dtype=None) -> Any:
        return self.xp.asarray(data, dtype=dtype)

    def to_numpy(self, array: Any) -> np.ndarray:
        return np.asarray(array)

    def zeros(self, shape: Tuple[int, ...], dtype=None) -> Any:
        return self.xp.zeros(shape, dtype=self.float_dtype if dtype is None else dtype)

    def sum(self, array: Any, axis: int = None) -> Any:
        return self.xp.sum(array, axis=axis)

    def sqrt(self, array: Any) -> Any:
        return self.xp.sqrt(array)

    def reshape(self, array: Any, newshape: Tuple[int, ...]) -> Any:
        return self.xp.reshape(array, newshape)

    def expand_dims(self, array: Any, axis: int) -> Any:
        return self.xp.expand_dims(array, axis)

    def stack(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        return self.xp.stack(arrays, axis=axis)

    def concatenate(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        return self.xp.concatenate(arrays, axis=axis)

    def eye(self, n: int) -> Any:
        return self.xp.eye(n, dtype=self.float_dtype)
