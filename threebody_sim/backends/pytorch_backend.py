"""PyTorch backend implementation (optional, GPU support)."""

from typing import Any, Sequence, Tuple
import numpy as np
from threebody_sim.backends.base import Backend

try:
    import torch
    TORCH_AVAILABLE = True
except ImportError:
    TORCH_AVAILABLE = False


class PyTorchBackend(Backend):
    """PyTorch-based backend with GPU support, float32."""

    def __init__(self, device: str = None):
        """Initialize PyTorch backend.

        Args:
            device: Device string (e.g., 'cpu', 'cuda:0'). Auto-selects if None.
        """
        if not TORCH_AVAILABLE:
            raise ImportError("PyTorch not available. Install with: pip install torch")

        if device is None:
            self._device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        else:
            self._device = torch.device(device)

    @property
    def name(self) -> str:
        return "pytorch"

    @property
    def device(self) -> str:
        return str(self._device)

    def array(self, data: Any, dtype=None) -> Any:
        if isinstance(data, np.ndarray):
            tensor = torch.from_numpy(np.ascontiguousarray(data))
        else:
            tensor = torch.tensor(data, dtype=dtype)
        return tensor.to(self._device)

    def to_numpy(self, array: Any) -> np.ndarray:
        if isinstance(array, torch.Tensor):
            return array.detach().cpu().numpy()
        return np.asarray(array)

    def zeros(self, shape: Tuple[int, ...], dtype=None) -> Any:
        return torch.zeros(shape, dtype=torch.float32 if dtype is None else dtype, device=self._device)

    def sum(self, array: Any, axis: int = None) -> Any:
        if axis is None:
            return torch.sum(array)
        return torch.sum(array, dim=axis)

    def sqrt(self, array: Any) -> Any:
        return torch.sqrt(array)

    def reshape(self, array: Any, newshape: Tuple[int, ...]) -> Any:
        return torch.reshape(array, newshape)

    def expand_dims(self, array: Any, axis: int) -> Any:
        return torch.unsqueeze(array, dim=axis)

    def stack(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        return torch.stack(list(arrays), dim=axis)

    def concatenate(self, arrays: Sequence[Any], axis: int = 0) -> Any:
        return torch.cat(list(arrays), dim=axis)

    def eye(self, n: int) -> Any:
        return torch.eye(n, dtype=torch.float32, device=self._device)

    def synchronize(self) -> None:
        if self._device.type == 'cuda':
            torch.cuda.synchronize(self._device)
