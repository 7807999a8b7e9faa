"""
Motion Kernel
=============

Single responsibility: Rewrite the shared vertex buffer for one frame.

Every vertex is an independent unit of work. The kernel resolves its owner,
looks up the owner's velocity and writes the displaced homogeneous position.
Work is dispatched in batches of ``block_dim * blocks_per_dispatch``
vertices; batches have no data dependency on one another.

Output rule for rest position (x, y, z), velocity (vx, vy, vz), time t:

    (x + vx*t, z + vz*t, y + vy*t, 1.0)

The y and z displacement channels are swapped relative to the stored
rest-pose channels. The swap is part of the buffer contract.
"""

from dataclasses import dataclass
import torch

from .exceptions import DeviceError, ValidationError
from .resolver import MISS, OwnershipResolver
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

BLOCK_DIM = 1024


def displace(rest: torch.Tensor, velocity: torch.Tensor, elapsed: float) -> torch.Tensor:
    """
    Apply the motion law to rest positions.

    Args:
        rest: (B, 3) rest-pose positions
        velocity: (B, 3) owner velocity per position
        elapsed: Global animation time

    Returns:
        (B, 4) homogeneous output positions

    Example:
        >>> displace(torch.zeros(1, 3), torch.tensor([[1.0, 0.0, 0.0]]), 2.0)
        tensor([[2., 0., 0., 1.]])
    """
    moved = rest + velocity * elapsed
    w = torch.ones_like(moved[:, :1])
    return torch.cat((moved[:, 0:1], moved[:, 2:3], moved[:, 1:2], w), dim=1)


@dataclass
class KernelReport:
    """Outcome of one kernel dispatch."""

    vertices: int
    misses: int
    batches: int


class MotionKernel:
    """
    Per-vertex ownership resolution plus displacement.

    Attributes:
        resolver: Ownership resolver built from the frame's descriptor table
        block_dim: Work units per block
        blocks_per_dispatch: Blocks processed per tensor batch
    """

    def __init__(
        self,
        resolver: OwnershipResolver,
        block_dim: int = BLOCK_DIM,
        blocks_per_dispatch: int = 16,
    ):
        if block_dim < 1 or blocks_per_dispatch < 1:
            raise ValidationError(
                f"block_dim and blocks_per_dispatch must be >= 1, "
                f"got {block_dim} and {blocks_per_dispatch}"
            )
        self.resolver = resolver
        self.block_dim = block_dim
        self.blocks_per_dispatch = blocks_per_dispatch

    @property
    def batch_size(self) -> int:
        return self.block_dim * self.blocks_per_dispatch

    def dispatch(
        self,
        rest: torch.Tensor,
        velocities: torch.Tensor,
        elapsed: float,
        out: torch.Tensor,
    ) -> KernelReport:
        """
        Rewrite ``out`` from the rest pose for the given animation time.

        Vertices that resolve to no instance keep their current contents.

        Args:
            rest: (V, 3) rest-pose positions on device
            velocities: (N, 3) per-instance velocities on device
            elapsed: Global animation time
            out: (>= V, 4) mapped buffer view, written in place

        Returns:
            KernelReport with vertex, miss and batch counts

        Raises:
            DeviceError: If the output view cannot hold the rest pose
        """
        total = int(rest.shape[0])

        if out.dim() != 2 or out.shape[1] != 4 or out.shape[0] < total:
            raise DeviceError(
                f"Output view of shape {tuple(out.shape)} cannot hold "
                f"{total:,} homogeneous vertices"
            )

        misses = 0
        batches = 0

        for start in range(0, total, self.batch_size):
            stop = min(start + self.batch_size, total)
            flat = torch.arange(start, stop, device=rest.device, dtype=torch.int64)

            owners = self.resolver.resolve(flat)
            claimed = owners != MISS

            # Gather with a safe index; unclaimed rows are masked out below
            if velocities.shape[0]:
                velocity = velocities[owners.clamp(min=0)]
            else:
                velocity = torch.zeros_like(rest[start:stop])
            moved = displace(rest[start:stop], velocity, elapsed)

            batch_misses = int((~claimed).sum().item())
            if batch_misses:
                out[flat[claimed]] = moved[claimed]
                logger.warning(
                    f"Ownership miss: {batch_misses:,} vertices in "
                    f"[{start:,}, {stop:,}) left untouched"
                )
            else:
                out[start:stop] = moved

            misses += batch_misses
            batches += 1

        return KernelReport(vertices=total, misses=misses, batches=batches)

    def __repr__(self) -> str:
        return (
            f"MotionKernel(resolver={self.resolver.strategy}, "
            f"block_dim={self.block_dim}, batch_size={self.batch_size})"
        )
