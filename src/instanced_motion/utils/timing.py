"""
Frame Timing
============

Single responsibility: Measure frame rate for the animation loop.
"""

import time
from typing import Callable, Optional


class FrameTimer:
    """
    Stopwatch that averages frame rate over a sampling window.

    The rate is recomputed once every ``fps_limit`` frames from the time
    accumulated over those frames, then the window restarts.

    Example:
        >>> timer = FrameTimer(fps_limit=30)
        >>> timer.start()
        >>> # ... render a frame ...
        >>> timer.tick()
        >>> timer.average_fps
        0.0
    """

    def __init__(self, fps_limit: int = 1, clock: Optional[Callable[[], float]] = None):
        self.fps_limit = max(1, fps_limit)
        self._clock = clock or time.perf_counter
        self._window_start: Optional[float] = None
        self._window_frames = 0
        self.total_frames = 0
        self.average_fps = 0.0

    def start(self):
        self._window_start = self._clock()
        self._window_frames = 0

    def tick(self) -> bool:
        """
        Count a finished frame.

        Returns:
            True when the sampling window closed and average_fps was updated
        """
        if self._window_start is None:
            self.start()

        self._window_frames += 1
        self.total_frames += 1

        if self._window_frames < self.fps_limit:
            return False

        elapsed = self._clock() - self._window_start
        if elapsed > 0:
            self.average_fps = self._window_frames / elapsed
        self.start()
        return True

    def __repr__(self) -> str:
        return f"FrameTimer(frames={self.total_frames}, fps={self.average_fps:.1f})"
