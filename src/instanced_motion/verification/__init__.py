"""Automated verification against reference buffer dumps."""

from .compare import (
    ComparisonResult,
    DUMP_SIZE,
    compare_arrays,
    compare_with_reference,
    read_dump,
    snapshot_image_buffer,
    write_dump,
)

__all__ = [
    "ComparisonResult",
    "DUMP_SIZE",
    "compare_arrays",
    "compare_with_reference",
    "read_dump",
    "snapshot_image_buffer",
    "write_dump",
]
