"""
Shared Animation Buffer
=======================

Single responsibility: Hand one device buffer back and forth between the
compute side (kernel writes) and the display side (rasterizer reads).

Ownership alternates and is never shared:

    DISPLAY --acquire_for_write()--> COMPUTE --release()--> DISPLAY
    DISPLAY/COMPUTE --close()--> CLOSED   (close waits for COMPUTE to end)

A second acquire while a write view is outstanding is a protocol violation
and raises DeviceError, as mapping an already mapped graphics resource does.
"""

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional
import torch

from instanced_motion.core.exceptions import DeviceError
from instanced_motion.utils.device import synchronize
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

COMPONENTS = 4


class BufferOwner(Enum):
    DISPLAY = 'display'
    COMPUTE = 'compute'
    CLOSED = 'closed'


class WriteView:
    """
    Exclusive, device-addressable view of the buffer.

    Valid only between acquire_for_write() and release(). Any use after
    release raises DeviceError.
    """

    def __init__(self, buffer: 'SharedAnimationBuffer', data: torch.Tensor):
        self._buffer = buffer
        self._data = data
        self._valid = True

    @property
    def positions(self) -> torch.Tensor:
        """(V, 4) float32 tensor to be written in place."""
        if not self._valid:
            raise DeviceError("Write view used after release")
        return self._data

    @property
    def valid(self) -> bool:
        return self._valid

    def upload_rest_pose(self, rest: torch.Tensor):
        """
        Write rest-pose positions as homogeneous (x, y, z, 1.0).

        Writing the same rest pose twice leaves the buffer unchanged.

        Args:
            rest: (V, 3) positions; V must equal the buffer length
        """
        positions = self.positions
        if rest.shape != (positions.shape[0], 3):
            raise DeviceError(
                f"Rest pose of shape {tuple(rest.shape)} does not fit a buffer "
                f"of {positions.shape[0]:,} vertices"
            )
        positions[:, :3].copy_(rest)
        positions[:, 3].fill_(1.0)

    def _invalidate(self):
        self._valid = False
        self._data = None

    def __repr__(self) -> str:
        return f"WriteView(valid={self._valid})"


class SharedAnimationBuffer:
    """
    Device-resident (V, 4) float32 vertex buffer with exclusive hand-off.

    Attributes:
        vertex_count: Number of homogeneous vertices
        device: Accelerator holding the buffer
    """

    def __init__(self, vertex_count: int, device: torch.device):
        """
        Allocate the buffer on the device.

        Args:
            vertex_count: Number of vertices to hold
            device: Target torch device

        Raises:
            DeviceError: If the allocation fails
        """
        self.vertex_count = vertex_count
        self.device = device

        try:
            self._data: Optional[torch.Tensor] = torch.zeros(
                (vertex_count, COMPONENTS), dtype=torch.float32, device=device
            )
        except RuntimeError as e:
            raise DeviceError(
                f"Failed to allocate animation buffer for {vertex_count:,} vertices "
                f"on {device}: {e}"
            ) from e

        self._owner = BufferOwner.DISPLAY
        self._view: Optional[WriteView] = None
        self._cond = threading.Condition()

        logger.debug(f"Allocated animation buffer: {vertex_count:,} x {COMPONENTS} on {device}")

    @property
    def owner(self) -> BufferOwner:
        return self._owner

    @property
    def closed(self) -> bool:
        return self._owner is BufferOwner.CLOSED

    def acquire_for_write(self) -> WriteView:
        """
        Map the buffer for the compute side.

        Returns:
            Exclusive WriteView

        Raises:
            DeviceError: If a write view is outstanding or the buffer is closed
        """
        with self._cond:
            if self._owner is BufferOwner.CLOSED:
                raise DeviceError("Cannot acquire a closed animation buffer")
            if self._owner is BufferOwner.COMPUTE:
                raise DeviceError("Animation buffer is already mapped for writing")

            self._owner = BufferOwner.COMPUTE
            self._view = WriteView(self, self._data)
            return self._view

    def release(self):
        """
        Unmap the buffer and hand it back to the display side.

        Waits for queued device work so the display side sees the whole
        frame.

        Raises:
            DeviceError: If the buffer is not mapped for writing
        """
        with self._cond:
            if self._owner is not BufferOwner.COMPUTE:
                raise DeviceError(
                    f"Cannot release animation buffer owned by {self._owner.value}"
                )
            try:
                synchronize(self.device)
            finally:
                self._view._invalidate()
                self._view = None
                self._owner = BufferOwner.DISPLAY
                self._cond.notify_all()

    @contextmanager
    def mapped(self) -> Iterator[WriteView]:
        """
        Acquire/release bracket as a context manager.

        Example:
            >>> with buffer.mapped() as view:
            ...     view.upload_rest_pose(rest)
        """
        view = self.acquire_for_write()
        try:
            yield view
        finally:
            self.release()

    def read_view(self) -> torch.Tensor:
        """
        Buffer contents for the display side.

        The returned tensor must only be read.

        Raises:
            DeviceError: If a write view is outstanding or the buffer is closed
        """
        with self._cond:
            if self._owner is not BufferOwner.DISPLAY:
                raise DeviceError(
                    f"Animation buffer is not readable while owned by {self._owner.value}"
                )
            return self._data

    def close(self, timeout: Optional[float] = None):
        """
        Free the buffer, exactly once.

        Waits for an in-flight write view to be released first. Later calls
        are no-ops.

        Args:
            timeout: Optional seconds to wait for the in-flight frame

        Raises:
            DeviceError: If the wait timed out
        """
        with self._cond:
            if self._owner is BufferOwner.CLOSED:
                return

            if not self._cond.wait_for(
                lambda: self._owner is not BufferOwner.COMPUTE, timeout=timeout
            ):
                raise DeviceError(
                    f"Timed out after {timeout}s waiting for the in-flight frame"
                )

            if self._owner is BufferOwner.CLOSED:
                return

            self._owner = BufferOwner.CLOSED
            self._data = None
            if self.device.type == 'cuda':
                torch.cuda.empty_cache()

            logger.debug("Released animation buffer")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return (
            f"SharedAnimationBuffer(vertices={self.vertex_count}, "
            f"device={self.device}, owner={self._owner.value})"
        )
