"""Instanced Motion - GPU animation of many rigid mesh instances.

Many independently moving instances of a few mesh templates are packed into
one shared vertex buffer. A per-vertex kernel finds each vertex's owning
instance from prefix sums of vertex counts, with no per-vertex tag, and
writes the displaced position in place.

Quick Start:
    >>> import torch
    >>> from instanced_motion.core import (
    ...     TemplateStore, UniformVelocitySampler, alternating_assignment, build_layout,
    ... )
    >>> from instanced_motion.pipeline import AnimationState, FrameDriver
    >>>
    >>> store = TemplateStore()
    >>> store.load('cube.obj')
    >>> store.load('pyramid.obj')
    >>> layout = build_layout(store, alternating_assignment(1500, 2), UniformVelocitySampler(seed=0))
    >>>
    >>> state = AnimationState.from_layout(layout, torch.device('cuda'))
    >>> driver = FrameDriver(time_step=0.01)
    >>> report = driver.step(state)

Modules:
    core: Templates, layout packing, ownership resolution, motion kernel
    rendering: Shared buffer hand-off and display-side consumers
    pipeline: Configuration, animation state, frame driver, orchestration
    verification: Reference dump comparison
    cli: Command-line interface
    utils: Logging, device uploads, context managers, timing
"""

__version__ = "1.0.0"
__author__ = "Instanced Motion Contributors"
__license__ = "MIT"

from .core.exceptions import (
    InstancedMotionError,
    ParseError,
    NotFoundError,
    CapacityExceeded,
    DeviceError,
    OwnershipResolutionMiss,
    ValidationError,
    VerificationError,
)

from .utils.logging import setup_logger, get_logger

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Exceptions
    "InstancedMotionError",
    "ParseError",
    "NotFoundError",
    "CapacityExceeded",
    "DeviceError",
    "OwnershipResolutionMiss",
    "ValidationError",
    "VerificationError",
    # Logging
    "setup_logger",
    "get_logger",
]
