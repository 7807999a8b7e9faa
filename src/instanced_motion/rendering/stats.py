"""
Frame Statistics Consumer
=========================

Single responsibility: Report frame rate and scene extent from the display
side without reading vertex data back to the host.
"""

from typing import List, Optional, Tuple
import torch

from instanced_motion.rendering.base import BaseFrameConsumer
from instanced_motion.utils.timing import FrameTimer
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)


class FrameStatsConsumer(BaseFrameConsumer):
    """
    Headless display-side consumer.

    Every ``log_every`` frames it logs the average frame rate and the
    axis-aligned extent of the animated scene. The extent is reduced on the
    device, so only two 4-vectors cross to the host.
    """

    def __init__(self, log_every: int = 60, fps_limit: Optional[int] = None):
        """
        Initialize consumer.

        Args:
            log_every: Frames between log lines (0 disables logging)
            fps_limit: Frames per FPS sampling window (defaults to log_every)
        """
        super().__init__()
        self.log_every = log_every
        self.timer = FrameTimer(fps_limit=fps_limit or max(1, log_every))
        self.last_extent: Optional[Tuple[List[float], List[float]]] = None
        self.frames_presented = 0

    def present(self, positions: torch.Tensor, indices: torch.Tensor, frame_index: int) -> None:
        self.timer.tick()
        self.frames_presented += 1

        if not self.log_every or self.frames_presented % self.log_every:
            return

        lo, hi = self.extent(positions)
        self.last_extent = (lo, hi)
        logger.info(
            f"Frame {frame_index:,}: {self.timer.average_fps:.1f} fps, "
            f"extent min=({lo[0]:.2f}, {lo[1]:.2f}, {lo[2]:.2f}) "
            f"max=({hi[0]:.2f}, {hi[1]:.2f}, {hi[2]:.2f}), "
            f"{indices.shape[0] // 3:,} triangles"
        )

    @staticmethod
    def extent(positions: torch.Tensor) -> Tuple[List[float], List[float]]:
        """Per-component (min, max) of the buffer, returned on the host."""
        lo = positions.amin(dim=0).tolist()
        hi = positions.amax(dim=0).tolist()
        return lo, hi

    @property
    def average_fps(self) -> float:
        return self.timer.average_fps

    def cleanup(self):
        logger.debug(
            f"Frame stats: {self.frames_presented:,} frames presented, "
            f"last average {self.timer.average_fps:.1f} fps"
        )
