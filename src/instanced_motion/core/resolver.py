"""
Vertex Ownership Resolution
===========================

Single responsibility: Map flat vertex indices back to their owning instance.

No per-vertex owner tag is stored. Ownership comes from the descriptor
table's vertex counts alone: instance i owns the half-open range
[end(i-1), end(i)), where end(i) is the inclusive prefix sum of vertex
counts. Both resolvers return -1 for indices no instance claims.
"""

from abc import ABC, abstractmethod
from typing import Dict, Type
import torch

from .exceptions import ValidationError
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

MISS = -1


class OwnershipResolver(ABC):
    """
    Abstract base class for ownership resolvers.

    Attributes:
        vertex_counts: (N,) int64 vertex count per instance, on device
        ends: (N,) int64 inclusive prefix sums of vertex_counts
        total_vertices: Number of vertices claimed by the table
    """

    strategy = 'abstract'

    def __init__(self, vertex_counts: torch.Tensor):
        """
        Initialize resolver from the descriptor table's vertex counts.

        Args:
            vertex_counts: (N,) integer tensor, already on the target device
        """
        self.vertex_counts = vertex_counts.to(torch.int64)
        self.ends = torch.cumsum(self.vertex_counts, dim=0)
        self.total_vertices = int(self.ends[-1].item()) if self.ends.numel() else 0

    @property
    def instance_count(self) -> int:
        return int(self.vertex_counts.shape[0])

    @property
    def device(self) -> torch.device:
        return self.vertex_counts.device

    @abstractmethod
    def resolve(self, flat_indices: torch.Tensor) -> torch.Tensor:
        """
        Resolve owners for a batch of flat vertex indices.

        Args:
            flat_indices: (B,) int64 vertex indices on the resolver's device

        Returns:
            (B,) int64 owner ids; -1 where no instance claims the index
        """
        pass

    def _mark_misses(self, flat_indices: torch.Tensor, owners: torch.Tensor) -> torch.Tensor:
        out_of_range = (flat_indices < 0) | (flat_indices >= self.total_vertices)
        return owners.masked_fill(out_of_range, MISS)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(instances={self.instance_count}, "
            f"vertices={self.total_vertices}, device={self.device})"
        )


class LinearScanResolver(OwnershipResolver):
    """
    Walk the descriptor table in order for every vertex.

    The owner is the first instance whose running prefix sum exceeds the
    vertex index, which equals the number of prefix sums that do not exceed
    it. Costs O(N) per vertex. This is the correctness oracle for the faster
    resolvers.
    """

    strategy = 'linear'

    def resolve(self, flat_indices: torch.Tensor) -> torch.Tensor:
        # (B, N) comparison against every running sum
        passed = self.ends.unsqueeze(0) <= flat_indices.unsqueeze(1)
        owners = passed.sum(dim=1, dtype=torch.int64)
        return self._mark_misses(flat_indices, owners)


class BinarySearchResolver(OwnershipResolver):
    """
    Binary search over the precomputed prefix sums.

    Costs O(log N) per vertex. Use it for scenes with many instances.
    """

    strategy = 'bisect'

    def resolve(self, flat_indices: torch.Tensor) -> torch.Tensor:
        owners = torch.searchsorted(self.ends, flat_indices, right=True)
        return self._mark_misses(flat_indices, owners)


RESOLVERS: Dict[str, Type[OwnershipResolver]] = {
    LinearScanResolver.strategy: LinearScanResolver,
    BinarySearchResolver.strategy: BinarySearchResolver,
}


def create_resolver(strategy: str, vertex_counts: torch.Tensor) -> OwnershipResolver:
    """
    Factory function to create a resolver by strategy name.

    Args:
        strategy: 'linear' or 'bisect'
        vertex_counts: (N,) vertex count per instance, on device

    Returns:
        OwnershipResolver instance

    Raises:
        ValidationError: If the strategy is unknown
    """
    try:
        resolver_cls = RESOLVERS[strategy]
    except KeyError:
        raise ValidationError(
            f"Unknown resolver strategy: {strategy!r}\n"
            f"Must be one of: {sorted(RESOLVERS)}"
        ) from None

    return resolver_cls(vertex_counts)
