"""Compute/display interop.

The shared animation buffer and the display-side consumer interface:
- buffer: exclusive acquire/release hand-off of the device vertex buffer
- base: consumer interface for whatever reads finished frames
- stats: headless consumer reporting frame rate and scene extent
"""

from .buffer import SharedAnimationBuffer, WriteView, BufferOwner
from .base import BaseFrameConsumer
from .stats import FrameStatsConsumer

__all__ = [
    "SharedAnimationBuffer",
    "WriteView",
    "BufferOwner",
    "BaseFrameConsumer",
    "FrameStatsConsumer",
]
