"""Utility functions and helpers.

Logging, device uploads, context managers, frame timing and other shared utilities.
"""

from .logging import setup_logger, get_logger
from .device import DeviceManager, synchronize
from .timing import FrameTimer

__all__ = ["setup_logger", "get_logger", "DeviceManager", "synchronize", "FrameTimer"]
