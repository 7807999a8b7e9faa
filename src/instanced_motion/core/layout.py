"""
Instance Layout Builder
=======================

Single responsibility: Pack many template instances into one vertex buffer.

Each instance gets a contiguous vertex range inside the Global Vertex Array.
The ranges follow the fixed instance order, so an instance's range start is
the prefix sum of the vertex counts of every instance before it. The Global
Index Array holds each instance's triangles with every index shifted by
that same prefix sum, so indices stay valid in the shared buffer.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple
import numpy as np

from .exceptions import CapacityExceeded, ValidationError
from .mesh_io import TemplateStore
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

Vector = Tuple[float, float, float]
VelocityFn = Callable[[int], Vector]

# Default scene ceilings
MAX_MAPPINGS = 100_000_000
OBJECT_COUNT = 1500


@dataclass(frozen=True)
class ObjectInstance:
    """
    One moving copy of a template.

    Attributes:
        template_id: Id of the template in the TemplateStore
        vertex_count: Cached template vertex count (read by the kernel
            instead of dereferencing the template)
        velocity: Constant (vx, vy, vz) displacement per unit time
    """

    template_id: int
    vertex_count: int
    velocity: Vector

    def __post_init__(self):
        if self.vertex_count <= 0:
            raise ValidationError(
                f"Instance of template {self.template_id} has vertex_count "
                f"{self.vertex_count}; instances must own at least one vertex"
            )
        object.__setattr__(self, 'velocity', tuple(float(v) for v in self.velocity))


class UniformVelocitySampler:
    """
    Per-instance velocity generator.

    Every component is drawn independently from U(-max_speed, max_speed).
    A fixed seed makes scene layouts reproducible.

    Example:
        >>> sampler = UniformVelocitySampler(max_speed=0.5, seed=7)
        >>> vx, vy, vz = sampler(0)
        >>> all(-0.5 <= v <= 0.5 for v in (vx, vy, vz))
        True
    """

    def __init__(self, max_speed: float = 1.0, seed: Optional[int] = None):
        if max_speed < 0:
            raise ValidationError(f"max_speed must be >= 0, got {max_speed}")
        self.max_speed = max_speed
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def __call__(self, instance_index: int) -> Vector:
        vx, vy, vz = self._rng.uniform(-self.max_speed, self.max_speed, size=3)
        return float(vx), float(vy), float(vz)

    def __repr__(self) -> str:
        return f"UniformVelocitySampler(max_speed={self.max_speed}, seed={self.seed})"


def alternating_assignment(instance_count: int, template_count: int) -> List[int]:
    """
    Assign templates round-robin: instance i uses template i % template_count.

    Args:
        instance_count: Number of instances in the scene
        template_count: Number of templates available

    Returns:
        List of template ids, one per instance
    """
    if template_count < 1:
        raise ValidationError("At least one template is required")
    return [i % template_count for i in range(instance_count)]


@dataclass(eq=False)
class SceneLayout:
    """
    Packed scene: descriptor table plus flattened vertex and index arrays.

    Attributes:
        instances: Ordered Instance Descriptor Table
        vertices: (V, 3) float32 Global Vertex Array (rest pose)
        indices: (I,) int64 Global Index Array
        vertex_offsets: (N + 1,) int64 exclusive prefix sums of vertex_count;
            instance i owns [vertex_offsets[i], vertex_offsets[i + 1])
        bounding_box_length: Largest template bounding box diagonal
    """

    instances: List[ObjectInstance]
    vertices: np.ndarray
    indices: np.ndarray
    vertex_offsets: np.ndarray
    bounding_box_length: float = 0.0

    @property
    def instance_count(self) -> int:
        return len(self.instances)

    @property
    def total_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def total_indices(self) -> int:
        return int(self.indices.shape[0])

    def vertex_range(self, instance_index: int) -> Tuple[int, int]:
        """Half-open vertex range [start, stop) owned by an instance."""
        return (
            int(self.vertex_offsets[instance_index]),
            int(self.vertex_offsets[instance_index + 1]),
        )

    def owner_of(self, position: int) -> int:
        """Host-side owner lookup, or -1 when the position is out of range."""
        if not 0 <= position < self.total_vertices:
            return -1
        return int(np.searchsorted(self.vertex_offsets, position, side='right')) - 1

    def descriptor_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Descriptor table as packed host arrays for device upload.

        Returns:
            Tuple of ((N,) int64 vertex counts, (N, 3) float32 velocities)
        """
        counts = np.fromiter(
            (inst.vertex_count for inst in self.instances),
            dtype=np.int64, count=self.instance_count
        )
        velocities = np.array(
            [inst.velocity for inst in self.instances], dtype=np.float32
        ).reshape(-1, 3)
        return counts, velocities

    def __repr__(self) -> str:
        return (
            f"SceneLayout(instances={self.instance_count}, "
            f"vertices={self.total_vertices}, indices={self.total_indices})"
        )


def check_capacity(
    store: TemplateStore,
    assignments: Sequence[int],
    max_indices: int = MAX_MAPPINGS,
    max_instances: int = OBJECT_COUNT,
) -> int:
    """
    Verify a scene fits the configured ceilings without allocating it.

    Args:
        store: Template store the assignments refer to
        assignments: Template id per instance
        max_indices: Ceiling on the Global Index Array length
        max_instances: Ceiling on the number of instances

    Returns:
        Total index count the scene needs

    Raises:
        CapacityExceeded: If either ceiling is exceeded
    """
    if len(assignments) > max_instances:
        raise CapacityExceeded('instances', len(assignments), max_instances)

    total_indices = sum(store.get(tid).indices.shape[0] for tid in assignments)
    if total_indices > max_indices:
        raise CapacityExceeded('indices', total_indices, max_indices)

    return total_indices


def build_layout(
    store: TemplateStore,
    assignments: Sequence[int],
    velocity_fn: VelocityFn,
    max_indices: int = MAX_MAPPINGS,
    max_instances: int = OBJECT_COUNT,
) -> SceneLayout:
    """
    Build the descriptor table and the packed vertex and index arrays.

    Instances are laid out in the given order. For instance i, a copy of its
    template's positions is appended to the vertex array and its triangle
    indices are appended with the running vertex count added.

    Args:
        store: Loaded templates
        assignments: Template id per instance, in scene order
        velocity_fn: Called once per instance index to draw its velocity
        max_indices: Ceiling on the Global Index Array length
        max_instances: Ceiling on the number of instances

    Returns:
        SceneLayout ready for upload

    Raises:
        ValidationError: If there are no instances
        CapacityExceeded: If the scene exceeds a ceiling (checked before
            anything is allocated)

    Example:
        >>> layout = build_layout(store, [0, 1], lambda i: (0.0, 0.0, 0.0))
        >>> layout.vertex_range(1)
        (4, 7)
    """
    if not assignments:
        raise ValidationError("Scene must contain at least one instance")

    total_indices = check_capacity(store, assignments, max_indices, max_instances)
    total_vertices = sum(store.get(tid).vertex_count for tid in assignments)

    vertices = np.empty((total_vertices, 3), dtype=np.float32)
    indices = np.empty(total_indices, dtype=np.int64)
    vertex_offsets = np.zeros(len(assignments) + 1, dtype=np.int64)
    instances: List[ObjectInstance] = []

    running_vertices = 0
    running_indices = 0

    for i, template_id in enumerate(assignments):
        template = store.get(template_id)
        vertex_count = template.vertex_count
        index_count = template.indices.shape[0]

        vertices[running_vertices:running_vertices + vertex_count] = template.positions
        indices[running_indices:running_indices + index_count] = (
            template.indices + running_vertices
        )

        instances.append(ObjectInstance(
            template_id=template_id,
            vertex_count=vertex_count,
            velocity=velocity_fn(i),
        ))

        running_vertices += vertex_count
        running_indices += index_count
        vertex_offsets[i + 1] = running_vertices

    layout = SceneLayout(
        instances=instances,
        vertices=vertices,
        indices=indices,
        vertex_offsets=vertex_offsets,
        bounding_box_length=store.max_bounding_box_length(),
    )

    logger.debug(
        f"Packed {layout.instance_count:,} instances: "
        f"{layout.total_vertices:,} vertices, {layout.total_indices:,} indices"
    )

    return layout
