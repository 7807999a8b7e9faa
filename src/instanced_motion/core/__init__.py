"""Core packing, ownership resolution and motion algorithms.

This module contains the fundamental operations for instanced animation:
- Mesh template loading (Wavefront-style position/face records)
- Instance layout building (prefix-sum vertex ranges, offset indices)
- Vertex ownership resolution (linear scan and binary search)
- Motion kernel (per-vertex displacement into the shared buffer)
- Input validation
"""

from .mesh_io import MeshTemplate, TemplateStore, load_template, parse_template
from .layout import (
    ObjectInstance,
    SceneLayout,
    UniformVelocitySampler,
    alternating_assignment,
    build_layout,
    check_capacity,
)
from .resolver import (
    OwnershipResolver,
    LinearScanResolver,
    BinarySearchResolver,
    create_resolver,
)
from .kernel import MotionKernel, KernelReport, displace
from .validator import validate_input_file, validate_device, select_device
from .exceptions import *

__all__ = [
    # Templates
    "MeshTemplate",
    "TemplateStore",
    "load_template",
    "parse_template",
    # Layout
    "ObjectInstance",
    "SceneLayout",
    "UniformVelocitySampler",
    "alternating_assignment",
    "build_layout",
    "check_capacity",
    # Resolution
    "OwnershipResolver",
    "LinearScanResolver",
    "BinarySearchResolver",
    "create_resolver",
    # Kernel
    "MotionKernel",
    "KernelReport",
    "displace",
    # Validation
    "validate_input_file",
    "validate_device",
    "select_device",
]
