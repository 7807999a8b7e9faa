"""
Context Managers
================

Single responsibility: Scope device state around kernel dispatches.
"""

from contextlib import contextmanager, nullcontext
import torch


@contextmanager
def torch_inference_mode():
    """
    Run kernel work without autograd bookkeeping.

    Buffer writes happen in place every frame; recording them for autograd
    would only cost memory.

    Example:
        >>> with torch_inference_mode():
        ...     kernel.dispatch(rest, velocities, t, view.positions)
    """
    with torch.inference_mode():
        yield


def device_scope(device: torch.device):
    """
    Make ``device`` the current CUDA device for the duration of a block.

    Kernels launched without an explicit device, and the synchronisation on
    release, then target the buffer's GPU when several are present. Other
    device types need no scoping.

    Args:
        device: Device holding the animation buffer

    Returns:
        Context manager
    """
    if device.type == 'cuda':
        return torch.cuda.device(device)
    return nullcontext()
