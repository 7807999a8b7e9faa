"""High-level pipeline orchestration.

Contains configuration, the animation state, the frame driver and run orchestration.
"""

from .config import AnimationConfig, default_template_paths
from .state import AnimationState, DriverPhase
from .driver import FrameDriver, FrameReport
from .orchestrator import RunResult, run_animation

__all__ = [
    'AnimationConfig',
    'default_template_paths',
    'AnimationState',
    'DriverPhase',
    'FrameDriver',
    'FrameReport',
    'RunResult',
    'run_animation',
]
