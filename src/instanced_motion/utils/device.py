"""Device management utilities for host-to-device uploads.

The animation loop must never read vertex data back from the device. This
module centralises every host -> device upload so they can be counted and,
for data that never changes (rest pose, index buffer), cached.
"""

import torch
import numpy as np
from typing import Optional, Union

from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

HostArray = Union[np.ndarray, torch.Tensor]


class DeviceManager:
    """
    Manages device placement and transfers for scene data.

    Minimizes unnecessary host -> device transfers by:
    - Tracking how many uploads were performed
    - Caching uploads of static data under a key
    - Skipping tensors already on the target device
    """

    def __init__(self, primary_device: torch.device):
        """
        Initialize device manager.

        Args:
            primary_device: Accelerator that owns the animation buffers
        """
        self.primary_device = primary_device
        self._transfer_count = 0
        self._cached_transfers = {}

    def upload(
        self,
        data: Optional[HostArray],
        dtype: Optional[torch.dtype] = None,
        cache_key: Optional[str] = None,
    ) -> Optional[torch.Tensor]:
        """
        Ensure data is on the primary device, avoiding repeated transfers.

        Args:
            data: numpy array or tensor (can be None)
            dtype: Optional target dtype
            cache_key: Optional key for caching this transfer

        Returns:
            Tensor on the primary device, or None if input was None

        Example:
            >>> dm = DeviceManager(torch.device('cuda'))
            >>> rest = dm.upload(layout.vertices, cache_key='rest_pose')
            # Second call returns the cached tensor without a transfer
            >>> rest = dm.upload(layout.vertices, cache_key='rest_pose')
        """
        if data is None:
            return None

        if cache_key and cache_key in self._cached_transfers:
            logger.debug(f"Using cached transfer for {cache_key}")
            return self._cached_transfers[cache_key]

        tensor = torch.from_numpy(np.ascontiguousarray(data)) if isinstance(data, np.ndarray) else data

        if tensor.device != self.primary_device:
            self._transfer_count += 1
            logger.debug(
                f"Uploading {tuple(tensor.shape)} {tensor.dtype} to {self.primary_device}"
            )
        result = tensor.to(device=self.primary_device, dtype=dtype or tensor.dtype)

        if cache_key:
            self._cached_transfers[cache_key] = result

        return result

    def invalidate(self, cache_key: str):
        """Drop one cached upload so the next upload transfers again."""
        self._cached_transfers.pop(cache_key, None)

    def get_transfer_count(self) -> int:
        """Get total number of host -> device transfers performed."""
        return self._transfer_count

    def clear_cache(self):
        """Clear cached transfers to free memory."""
        self._cached_transfers.clear()
        logger.debug("Cleared device transfer cache")


def synchronize(device: torch.device):
    """Block until all queued work on the device has finished."""
    if device.type == 'cuda':
        torch.cuda.synchronize(device)
