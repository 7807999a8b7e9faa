"""
Input Validation
================

Single responsibility: Validate inputs before processing.
"""

from pathlib import Path
from typing import Optional, Union
import torch

from .exceptions import DeviceError, NotFoundError, ValidationError

SUPPORTED_TEMPLATE_FORMATS = {'.obj'}


def validate_input_file(filepath: Union[str, Path]) -> Path:
    """
    Validate that a template file exists and has a supported format.

    Args:
        filepath: Path to mesh template file

    Returns:
        Path object

    Raises:
        NotFoundError: If file doesn't exist
        ValidationError: If format not supported
    """
    filepath = Path(filepath)

    if not filepath.is_file():
        raise NotFoundError(filepath)

    if filepath.suffix.lower() not in SUPPORTED_TEMPLATE_FORMATS:
        raise ValidationError(
            f"Unsupported format: {filepath.suffix}\n"
            f"Supported: {', '.join(sorted(SUPPORTED_TEMPLATE_FORMATS))}"
        )

    return filepath


def validate_device(device: Union[str, torch.device]) -> torch.device:
    """
    Validate and create torch device.

    Args:
        device: Device string ('cpu', 'cuda', 'cuda:1', etc.)

    Returns:
        torch.device object

    Raises:
        DeviceError: If CUDA requested but not available, or the requested
            device ordinal does not exist
    """
    try:
        device = torch.device(device)
    except RuntimeError as e:
        raise DeviceError(f"Invalid device specification {device!r}: {e}") from e

    if device.type == 'cuda':
        if not torch.cuda.is_available():
            raise DeviceError(
                "CUDA requested but not available.\n"
                "Options:\n"
                "  1. Use CPU: pass --cpu\n"
                "  2. Install CUDA: https://developer.nvidia.com/cuda-downloads\n"
                "  3. Reinstall PyTorch with CUDA support"
            )
        if device.index is not None and device.index >= torch.cuda.device_count():
            raise DeviceError(
                f"CUDA device {device.index} requested but only "
                f"{torch.cuda.device_count()} device(s) present"
            )

    return device


def select_device(gpu: bool = False, device: Optional[str] = None) -> torch.device:
    """
    Pick the accelerator from command-line style flags.

    An explicit device string wins over the --gpu/--cpu switch.

    Args:
        gpu: Use the default CUDA device
        device: Explicit device string, e.g. 'cuda:1'

    Returns:
        Validated torch.device
    """
    if device:
        return validate_device(device)
    return validate_device('cuda' if gpu else 'cpu')
