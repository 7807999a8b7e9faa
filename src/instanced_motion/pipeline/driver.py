"""
Frame Driver
============

Single responsibility: Run one animation frame against an AnimationState.

Each frame moves the state machine through

    IDLE --acquire, upload, dispatch--> ANIMATING --release--> IDLE

and then advances the global animation time by a fixed step. Accelerator
failures are fatal: the buffer is released and DeviceError propagates.
"""

from dataclasses import dataclass
from typing import Optional
import torch

from instanced_motion.core.exceptions import (
    DeviceError,
    InstancedMotionError,
    OwnershipResolutionMiss,
    ValidationError,
)
from instanced_motion.core.kernel import BLOCK_DIM, KernelReport, MotionKernel
from instanced_motion.core.resolver import RESOLVERS, create_resolver
from instanced_motion.pipeline.state import AnimationState, DriverPhase
from instanced_motion.rendering.base import BaseFrameConsumer
from instanced_motion.utils.context import device_scope, torch_inference_mode
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FrameReport:
    """Summary of one completed frame."""

    frame_index: int
    elapsed: float
    vertices: int
    misses: int
    rest_uploaded: bool


class FrameDriver:
    """
    Per-frame orchestration of buffer hand-off and kernel dispatch.

    Attributes:
        time_step: Animation time added after each successful frame
        resolver: Ownership resolver strategy name
        block_dim: Work units per kernel block
        blocks_per_dispatch: Blocks per tensor batch
        miss_frame_limit: Frames with misses tolerated before aborting
        consumer: Optional display-side consumer of finished frames
    """

    def __init__(
        self,
        time_step: float = 0.01,
        resolver: str = 'bisect',
        block_dim: int = BLOCK_DIM,
        blocks_per_dispatch: int = 16,
        miss_frame_limit: int = 3,
        consumer: Optional[BaseFrameConsumer] = None,
    ):
        if time_step <= 0:
            raise ValidationError(f"time_step must be > 0, got {time_step}")
        if resolver not in RESOLVERS:
            raise ValidationError(f"Unknown resolver strategy: {resolver!r}")

        self.time_step = time_step
        self.resolver = resolver
        self.block_dim = block_dim
        self.blocks_per_dispatch = blocks_per_dispatch
        self.miss_frame_limit = miss_frame_limit
        self.consumer = consumer

    def upload_descriptors(self, state: AnimationState):
        """
        Upload the Instance Descriptor Table for this frame.

        Cost is proportional to the instance count, not the vertex count.

        Returns:
            Tuple of ((N,) int64 vertex counts, (N, 3) float32 velocities) on device
        """
        counts, velocities = state.layout.descriptor_arrays()
        dm = state.device_manager
        return (
            dm.upload(counts, dtype=torch.int64),
            dm.upload(velocities, dtype=torch.float32),
        )

    def _animate(self, state: AnimationState) -> KernelReport:
        view = state.buffer.acquire_for_write()
        state.phase = DriverPhase.ANIMATING
        try:
            with device_scope(state.device), torch_inference_mode():
                if not state.rest_uploaded:
                    view.upload_rest_pose(state.rest_positions)
                    state.rest_uploaded = True
                    logger.debug(
                        f"Uploaded rest pose: {state.layout.total_vertices:,} vertices"
                    )

                counts, velocities = self.upload_descriptors(state)
                kernel = MotionKernel(
                    create_resolver(self.resolver, counts),
                    block_dim=self.block_dim,
                    blocks_per_dispatch=self.blocks_per_dispatch,
                )
                return kernel.dispatch(
                    state.rest_positions, velocities, state.elapsed, view.positions
                )
        finally:
            state.buffer.release()
            state.phase = DriverPhase.IDLE

    def step(self, state: AnimationState) -> FrameReport:
        """
        Animate one frame.

        The frame uses the animation time from before this call. Time then
        advances by ``time_step``, only if the frame succeeded.

        Args:
            state: Animation state in the IDLE phase

        Returns:
            FrameReport for the finished frame

        Raises:
            DeviceError: If the state is not idle or any accelerator
                operation fails
            OwnershipResolutionMiss: If misses were reported in more frames
                than miss_frame_limit allows
        """
        if state.phase is not DriverPhase.IDLE:
            raise DeviceError(
                f"Frame requested while the driver is {state.phase.value}"
            )

        uploaded_before = state.rest_uploaded
        frame_time = state.elapsed

        try:
            report = self._animate(state)
        except InstancedMotionError:
            raise
        except RuntimeError as e:
            raise DeviceError(f"Accelerator failure in frame {state.frame_index}: {e}") from e

        state.elapsed += self.time_step
        state.frame_index += 1

        if report.misses:
            state.total_misses += report.misses
            state.miss_frames += 1
            if state.miss_frames > self.miss_frame_limit:
                raise OwnershipResolutionMiss(state.total_misses, state.miss_frames)

        if self.consumer is not None:
            self.consumer.present(
                state.buffer.read_view(), state.index_buffer, state.frame_index - 1
            )

        return FrameReport(
            frame_index=state.frame_index - 1,
            elapsed=frame_time,
            vertices=report.vertices,
            misses=report.misses,
            rest_uploaded=not uploaded_before,
        )

    def __repr__(self) -> str:
        return (
            f"FrameDriver(time_step={self.time_step}, resolver={self.resolver}, "
            f"block_dim={self.block_dim})"
        )
