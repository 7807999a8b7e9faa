"""
Pipeline Configuration
======================

Single responsibility: Configure the animation run with validation.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import torch

from instanced_motion.core.exceptions import NotFoundError, ValidationError
from instanced_motion.core.kernel import BLOCK_DIM
from instanced_motion.core.layout import MAX_MAPPINGS, OBJECT_COUNT
from instanced_motion.core.resolver import RESOLVERS
from instanced_motion.core.validator import validate_input_file

ASSETS_DIR = Path(__file__).resolve().parent.parent / 'assets'

# Automated verification thresholds
MAX_EPSILON_ERROR = 10.0
THRESHOLD = 0.30


def default_template_paths() -> List[Path]:
    """
    Bundled templates used when none are given.

    Returns:
        Paths to the bundled cube and pyramid templates
    """
    return [ASSETS_DIR / 'cube.obj', ASSETS_DIR / 'pyramid.obj']


@dataclass
class AnimationConfig:
    """
    Configuration for an instanced animation run.

    This dataclass encapsulates all settings needed for a run, with
    validation in __post_init__ to catch errors before any device work.

    Attributes:
        template_paths: Mesh templates, assigned to instances round-robin
        output_dir: Base output directory (default: 'results')
        instances: Number of animated instances
        frames: Number of frames to animate
        time_step: Animation time added after every frame
        max_speed: Per-axis velocity bound for the uniform sampler
        seed: Optional seed for reproducible velocities
        resolver: Ownership resolver strategy ('linear' or 'bisect')
        device: PyTorch device (cpu or cuda)
        block_dim: Work units per kernel block
        blocks_per_dispatch: Blocks per tensor batch
        max_indices: Ceiling on the Global Index Array length
        max_instances: Ceiling on the instance count
        miss_frame_limit: Frames with ownership misses tolerated before abort
        refresh_delay_ms: Frame pacing delay in display mode
        reference_file: Reference dump; selects automated verification mode
        epsilon: Per-element tolerance for the reference comparison
        threshold: Tolerated fraction of mismatching elements
        verbose: Enable console output
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_every: Frames between frame statistics log lines
        timestamp: Optional shared run directory name

    Example:
        >>> config = AnimationConfig(instances=200, frames=30)
        >>> config.verification_mode
        False
        >>> config.should_pace_frames
        True
    """

    # Input/Output
    template_paths: List[Path] = field(default_factory=default_template_paths)
    output_dir: Path = Path("results")

    # Scene
    instances: int = OBJECT_COUNT
    frames: int = 600
    time_step: float = 0.01
    max_speed: float = 1.0
    seed: Optional[int] = None

    # Kernel
    resolver: str = "bisect"
    device: torch.device = field(default_factory=lambda: torch.device('cpu'))
    block_dim: int = BLOCK_DIM
    blocks_per_dispatch: int = 16

    # Ceilings
    max_indices: int = MAX_MAPPINGS
    max_instances: int = OBJECT_COUNT
    miss_frame_limit: int = 3

    # Display mode
    refresh_delay_ms: int = 10

    # Verification mode
    reference_file: Optional[Path] = None
    epsilon: float = MAX_EPSILON_ERROR
    threshold: float = THRESHOLD

    # Logging
    verbose: bool = True
    log_level: str = "INFO"
    log_every: int = 60

    # Output layout
    timestamp: Optional[str] = None

    def __post_init__(self):
        """
        Validate and normalize configuration after initialization.

        Raises:
            ValidationError: If any configuration is invalid
            NotFoundError: If a template or the reference file is missing
        """
        if not self.template_paths:
            raise ValidationError("At least one template path is required")
        self.template_paths = [validate_input_file(p) for p in self.template_paths]
        self.output_dir = Path(self.output_dir)

        if self.reference_file is not None:
            self.reference_file = Path(self.reference_file)
            # Fail before animating rather than after the last frame
            if not self.reference_file.is_file():
                raise NotFoundError(self.reference_file)

        if not isinstance(self.device, torch.device):
            self.device = torch.device(self.device)

        for name in ('instances', 'frames', 'block_dim', 'blocks_per_dispatch',
                     'max_indices', 'max_instances'):
            value = getattr(self, name)
            if value < 1:
                raise ValidationError(f"{name} must be >= 1, got {value}")

        if self.time_step <= 0:
            raise ValidationError(f"time_step must be > 0, got {self.time_step}")

        if self.max_speed < 0:
            raise ValidationError(f"max_speed must be >= 0, got {self.max_speed}")

        if self.resolver not in RESOLVERS:
            raise ValidationError(
                f"Invalid resolver: {self.resolver}\n"
                f"Must be one of: {sorted(RESOLVERS)}"
            )

        if self.miss_frame_limit < 0 or self.refresh_delay_ms < 0 or self.log_every < 0:
            raise ValidationError(
                "miss_frame_limit, refresh_delay_ms and log_every must be >= 0"
            )

        if self.epsilon <= 0:
            raise ValidationError(f"epsilon must be > 0, got {self.epsilon}")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValidationError(
                f"threshold must be in range [0.0, 1.0], got {self.threshold}"
            )

        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}
        if self.log_level.upper() not in valid_levels:
            raise ValidationError(
                f"Invalid log_level: {self.log_level}\n"
                f"Must be one of: {valid_levels}"
            )
        self.log_level = self.log_level.upper()

    @property
    def verification_mode(self) -> bool:
        """
        Whether this run compares its final frame against a reference dump.

        Returns:
            True if a reference file was given
        """
        return self.reference_file is not None

    @property
    def should_pace_frames(self) -> bool:
        """
        Whether to sleep between frames.

        Verification runs go as fast as possible.

        Returns:
            True in display mode with a non-zero refresh delay
        """
        return not self.verification_mode and self.refresh_delay_ms > 0

    def __repr__(self) -> str:
        return (
            f"AnimationConfig(\n"
            f"  templates={[p.name for p in self.template_paths]},\n"
            f"  instances={self.instances},\n"
            f"  frames={self.frames},\n"
            f"  resolver={self.resolver},\n"
            f"  device={self.device},\n"
            f"  verification={self.verification_mode}\n"
            f")"
        )
