"""Custom exceptions for instanced mesh animation.

This module defines domain-specific exceptions that provide clear,
actionable error messages for the failure modes of scene building,
accelerator interop and automated verification.
"""


class InstancedMotionError(Exception):
    """Base exception for all instanced animation errors.

    All custom exceptions in the instanced_motion package inherit from this
    base class. This allows catching all package errors with a single except
    clause.

    Example:
        >>> try:
        ...     run_animation(config)
        ... except InstancedMotionError as e:
        ...     print(f"Animation failed: {e}")
    """
    pass


class ParseError(InstancedMotionError):
    """Raised when a mesh template file contains a malformed record.

    Common causes:
    - Position record without exactly three floating-point values
    - Face record with a vertex count other than 3 (quads, polygons)
    - Face index that is not an integer or is outside the declared positions

    Attributes:
        source: Name or path of the template being parsed
        line_number: 1-based line number of the offending record (optional)

    Example:
        >>> parse_template(["v 0 0 0", "f 1 2 3 4"], name="quad")
        ParseError: quad:2: face record must have 3 indices, got 4
    """

    def __init__(self, message: str, source: str = None, line_number: int = None):
        """Initialize parse error.

        Args:
            message: Description of the malformed record
            source: Template name or path (optional)
            line_number: Line of the malformed record (optional)
        """
        self.source = source
        self.line_number = line_number

        prefix = ""
        if source is not None:
            prefix = f"{source}:"
            if line_number is not None:
                prefix += f"{line_number}:"
            prefix += " "

        super().__init__(f"{prefix}{message}")


class NotFoundError(InstancedMotionError, FileNotFoundError):
    """Raised when a mesh template or reference file does not exist.

    Also a FileNotFoundError, so callers that only know about the standard
    library exception still catch it.
    """

    def __init__(self, path):
        self.path = path
        self.message = (
            f"File not found: {path}\n"
            f"Please check the path."
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class CapacityExceeded(InstancedMotionError):
    """Raised when a scene exceeds a configured ceiling.

    Scene building checks the instance count and the total index count
    against their ceilings before any host array or device buffer is
    allocated. Hitting a ceiling is a configuration error, not a runtime
    fault.

    Attributes:
        kind: Which ceiling was exceeded ('indices' or 'instances')
        requested: Count the scene would need
        limit: Configured ceiling

    Example:
        >>> raise CapacityExceeded('indices', 100_000_003, 100_000_000)
        CapacityExceeded: Scene needs 100,000,003 indices but the ceiling is
        100,000,000. Reduce the instance count or raise the ceiling.
    """

    def __init__(self, kind: str, requested: int, limit: int):
        """Initialize capacity error.

        Args:
            kind: Name of the exceeded quantity
            requested: Count required by the scene
            limit: Configured maximum
        """
        self.kind = kind
        self.requested = requested
        self.limit = limit

        super().__init__(
            f"Scene needs {requested:,} {kind} but the ceiling is {limit:,}. "
            f"Reduce the instance count or raise the ceiling."
        )


class DeviceError(InstancedMotionError):
    """Raised when an accelerator operation fails.

    Covers buffer acquire/release protocol violations, failed kernel
    dispatches and device allocation failures. These indicate driver or
    hardware state that cannot be recovered, so the run terminates.

    Example:
        >>> try:
        ...     kernel.dispatch(rest, velocities, t, view.positions)
        ... except RuntimeError as e:
        ...     raise DeviceError(f"Kernel dispatch failed: {e}") from e
    """
    pass


class OwnershipResolutionMiss(InstancedMotionError):
    """Raised when vertices repeatedly resolve to no owning instance.

    A single miss leaves the vertex untouched and is only logged. Misses in
    several frames mean the descriptor table and the vertex buffer disagree,
    which is a layout builder bug.

    Attributes:
        misses: Total number of unresolved vertices so far
        frames: Number of frames that reported misses
    """

    def __init__(self, misses: int, frames: int):
        self.misses = misses
        self.frames = frames

        super().__init__(
            f"Ownership resolution failed for {misses:,} vertices across "
            f"{frames} frames. The descriptor table does not cover the vertex "
            f"buffer (scene layout integrity violation)."
        )


class ValidationError(InstancedMotionError):
    """Raised when input or configuration validation fails.

    Example:
        >>> if time_step <= 0:
        ...     raise ValidationError(f"time_step must be > 0, got {time_step}")
    """
    pass


class VerificationError(InstancedMotionError):
    """Raised when a reference dump cannot be used for comparison."""
    pass
