"""
Animation State
===============

Single responsibility: Hold everything that changes from frame to frame.

The frame driver is a function of this value. Nothing lives in module
globals, so the driver's state machine can be tested on its own.
"""

from dataclasses import dataclass, field
from enum import Enum
import torch

from instanced_motion.core.exceptions import DeviceError
from instanced_motion.core.layout import SceneLayout
from instanced_motion.rendering.buffer import SharedAnimationBuffer
from instanced_motion.utils.device import DeviceManager

REST_POSE_KEY = 'rest_pose'
INDEX_BUFFER_KEY = 'index_buffer'


class DriverPhase(Enum):
    IDLE = 'idle'
    ANIMATING = 'animating'


@dataclass(eq=False)
class AnimationState:
    """
    Per-run animation state.

    Attributes:
        layout: Packed scene (descriptor table and host arrays)
        buffer: Shared animation buffer on the device
        device_manager: Counts and caches host -> device uploads
        rest_positions: (V, 3) rest pose on device
        index_buffer: (I,) Global Index Array on device
        elapsed: Global animation time; only ever increases
        frame_index: Number of completed frames
        phase: Driver state machine phase
        rest_uploaded: Whether the buffer holds the current rest pose
        total_misses: Unresolved vertices over the whole run
        miss_frames: Frames that reported at least one miss
    """

    layout: SceneLayout
    buffer: SharedAnimationBuffer
    device_manager: DeviceManager
    rest_positions: torch.Tensor
    index_buffer: torch.Tensor
    elapsed: float = 0.0
    frame_index: int = 0
    phase: DriverPhase = DriverPhase.IDLE
    rest_uploaded: bool = False
    total_misses: int = 0
    miss_frames: int = 0

    @classmethod
    def from_layout(cls, layout: SceneLayout, device: torch.device) -> 'AnimationState':
        """
        Allocate device resources for a layout.

        Args:
            layout: Built scene layout
            device: Accelerator to animate on

        Returns:
            AnimationState in the IDLE phase at time 0

        Raises:
            DeviceError: If the buffer allocation or an upload fails; a
                buffer that was already allocated is closed first
        """
        device_manager = DeviceManager(device)
        buffer = SharedAnimationBuffer(layout.total_vertices, device)
        try:
            rest = device_manager.upload(layout.vertices, dtype=torch.float32, cache_key=REST_POSE_KEY)
            indices = device_manager.upload(layout.indices, dtype=torch.int64, cache_key=INDEX_BUFFER_KEY)
        except RuntimeError as e:
            buffer.close()
            raise DeviceError(f"Failed to upload scene data to {device}: {e}") from e

        return cls(
            layout=layout,
            buffer=buffer,
            device_manager=device_manager,
            rest_positions=rest,
            index_buffer=indices,
        )

    @property
    def device(self) -> torch.device:
        return self.buffer.device

    def mark_layout_changed(self):
        """Force the next frame to upload the rest pose again."""
        self.device_manager.invalidate(REST_POSE_KEY)
        try:
            self.rest_positions = self.device_manager.upload(
                self.layout.vertices, dtype=torch.float32, cache_key=REST_POSE_KEY
            )
        except RuntimeError as e:
            raise DeviceError(f"Failed to upload rest pose to {self.device}: {e}") from e
        self.rest_uploaded = False

    def __repr__(self) -> str:
        return (
            f"AnimationState(frame={self.frame_index}, elapsed={self.elapsed:.3f}, "
            f"phase={self.phase.value}, device={self.device})"
        )
