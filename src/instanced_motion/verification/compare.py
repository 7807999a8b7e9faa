"""
Reference Comparison
====================

Single responsibility: Dump a fixed-size float image buffer and compare it
with a reference dump.

The dump is the first IMAGE_WIDTH * IMAGE_HEIGHT * 4 floats of the
flattened animation buffer, zero-padded when the scene is smaller. Files are
raw little-endian float32 with no header.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union
import numpy as np
import torch

from instanced_motion.core.exceptions import NotFoundError, VerificationError
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_WIDTH = 256
IMAGE_HEIGHT = 256
CHANNELS = 4
DUMP_SIZE = IMAGE_WIDTH * IMAGE_HEIGHT * CHANNELS
DUMP_DTYPE = np.dtype('<f4')


@dataclass
class ComparisonResult:
    """
    Outcome of a dump comparison.

    Attributes:
        total: Number of compared elements
        mismatches: Elements differing by at least epsilon
        max_error: Largest absolute difference seen
        passed: Whether the mismatch count is within the threshold
    """

    total: int
    mismatches: int
    max_error: float
    passed: bool

    @property
    def mismatch_ratio(self) -> float:
        return self.mismatches / self.total if self.total else 0.0


def snapshot_image_buffer(positions: torch.Tensor) -> np.ndarray:
    """
    Copy the animation buffer into a fixed-size host array.

    This is the only device -> host readback of vertex data, done once at
    the end of a verification run.

    Args:
        positions: (V, 4) buffer contents

    Returns:
        (DUMP_SIZE,) float32 array
    """
    flat = positions.detach().reshape(-1)[:DUMP_SIZE].to('cpu', torch.float32).numpy()
    image = np.zeros(DUMP_SIZE, dtype=DUMP_DTYPE)
    image[:flat.shape[0]] = flat
    return image


def write_dump(path: Union[str, Path], data: np.ndarray) -> Path:
    """
    Write a raw float32 dump.

    Args:
        path: Output file
        data: Array to write (cast to little-endian float32)

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.asarray(data, dtype=DUMP_DTYPE).tofile(path)
    logger.debug(f"Wrote {data.size:,} floats to {path}")
    return path


def read_dump(path: Union[str, Path]) -> np.ndarray:
    """
    Read a raw float32 dump.

    Raises:
        NotFoundError: If the file does not exist
        VerificationError: If the file size is not a whole number of floats
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(path)

    size = path.stat().st_size
    if size % DUMP_DTYPE.itemsize:
        raise VerificationError(
            f"Reference {path} has {size} bytes, not a whole number of float32 values"
        )
    return np.fromfile(path, dtype=DUMP_DTYPE)


def compare_arrays(
    reference: np.ndarray,
    data: np.ndarray,
    epsilon: float,
    threshold: float,
) -> ComparisonResult:
    """
    Element-wise comparison with a tolerated error fraction.

    An element is an error when |reference - data| >= epsilon. With a
    threshold of 0 every element must match; otherwise the comparison passes
    while the error count stays below len * threshold.

    Args:
        reference: Expected values
        data: Computed values
        epsilon: Per-element tolerance
        threshold: Tolerated fraction of erroneous elements

    Returns:
        ComparisonResult
    """
    if reference.shape != data.shape:
        logger.error(
            f"Dump size mismatch: reference has {reference.size:,} values, "
            f"computed {data.size:,}"
        )
        return ComparisonResult(
            total=max(reference.size, data.size),
            mismatches=abs(reference.size - data.size),
            max_error=float('inf'),
            passed=False,
        )

    diff = np.abs(reference.astype(np.float64) - data.astype(np.float64))
    # NaN never compares below epsilon, so it counts as an error
    errors = int(np.count_nonzero(~(diff < epsilon)))
    max_error = float(np.nanmax(diff)) if diff.size else 0.0

    if threshold == 0.0:
        passed = errors == 0
    else:
        passed = diff.size * threshold > errors

    return ComparisonResult(
        total=int(diff.size),
        mismatches=errors,
        max_error=max_error,
        passed=passed,
    )


def compare_with_reference(
    data: np.ndarray,
    reference_path: Union[str, Path],
    epsilon: float = 10.0,
    threshold: float = 0.30,
) -> ComparisonResult:
    """
    Compare a computed dump with a reference file.

    Args:
        data: Computed dump
        reference_path: Reference dump file
        epsilon: Per-element tolerance
        threshold: Tolerated fraction of erroneous elements

    Returns:
        ComparisonResult

    Raises:
        NotFoundError: If the reference does not exist
    """
    reference = read_dump(reference_path)
    result = compare_arrays(reference, np.asarray(data, dtype=DUMP_DTYPE), epsilon, threshold)

    logger.info(
        f"Compared {result.total:,} values with {Path(reference_path).name}: "
        f"{result.mismatches:,} mismatches ({result.mismatch_ratio:.2%}), "
        f"max error {result.max_error:.4g} -> {'PASSED' if result.passed else 'FAILED'}"
    )
    return result
