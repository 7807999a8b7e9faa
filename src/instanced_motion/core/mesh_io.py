"""
Mesh Template I/O
=================

Single responsibility: Load mesh templates and keep them in a store.

A template is the reusable geometry shared by many animated instances:
ordered rest-pose positions plus 0-based triangle index triples. Templates
are read from Wavefront-style text records:

    v  <x> <y> <z>      position record
    f  <a> <b> <c>      face record, 1-based indices ("a/b/c" forms allowed)

Every other line is treated as a comment.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple, Union
import numpy as np

from .exceptions import NotFoundError, ParseError
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

Vector = Tuple[float, float, float]

POSITION_RECORD = 'v'
FACE_RECORD = 'f'


def _readonly(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class MeshTemplate:
    """
    Immutable geometry shared by instances.

    Attributes:
        name: Template name (file stem when loaded from disk)
        positions: (k, 3) float32 rest-pose vertex positions
        triangles: (m, 3) int64 0-based vertex indices
    """

    name: str
    positions: np.ndarray
    triangles: np.ndarray
    centroid: Tuple[float, float, float] = field(init=False)

    def __post_init__(self):
        positions = _readonly(np.array(self.positions, dtype=np.float32).reshape(-1, 3))
        triangles = _readonly(np.array(self.triangles, dtype=np.int64).reshape(-1, 3))
        object.__setattr__(self, 'positions', positions)
        object.__setattr__(self, 'triangles', triangles)

        centroid = positions.mean(axis=0) if len(positions) else np.zeros(3)
        object.__setattr__(self, 'centroid', tuple(float(c) for c in centroid))

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0])

    @property
    def indices(self) -> np.ndarray:
        """Flat (3m,) index list, in triangle order."""
        return self.triangles.reshape(-1)

    def bounding_box(self) -> Tuple[Vector, Vector]:
        """Axis-aligned bounding box as (min corner, max corner)."""
        lo = self.positions.min(axis=0)
        hi = self.positions.max(axis=0)
        return tuple(float(v) for v in lo), tuple(float(v) for v in hi)

    @property
    def bounding_box_length(self) -> float:
        """Length of the bounding box diagonal."""
        lo, hi = self.bounding_box()
        return float(np.linalg.norm(np.subtract(hi, lo)))

    def __repr__(self) -> str:
        return (
            f"MeshTemplate(name={self.name!r}, vertices={self.vertex_count}, "
            f"triangles={self.triangle_count})"
        )


def _parse_face_index(token: str, name: str, line_number: int) -> int:
    # "a", "a/b", "a//c", "a/b/c": only the vertex index matters
    head = token.split('/', 1)[0]
    try:
        value = int(head)
    except ValueError:
        raise ParseError(
            f"face index {token!r} is not an integer", name, line_number
        ) from None

    if value < 1:
        raise ParseError(
            f"face index {value} is not a valid 1-based index", name, line_number
        )

    return value - 1


def parse_template(lines: Iterable[str], name: str = "<template>") -> MeshTemplate:
    """
    Parse position and face records into a template.

    Records are accumulated in file order. Face indices are converted from
    1-based to 0-based before storage. Nothing is returned unless the whole
    input parses.

    Args:
        lines: Text lines of the template file
        name: Template name used in error messages

    Returns:
        MeshTemplate with k positions and m triangles

    Raises:
        ParseError: If any position or face record is malformed, a face is not
            a triangle, an index falls outside the positions, or the input
            has no positions or no faces

    Example:
        >>> tpl = parse_template(["v 0 0 0", "v 1 0 0", "v 0 1 0", "f 1 2 3"])
        >>> tpl.indices.tolist()
        [0, 1, 2]
    """
    positions: List[Vector] = []
    triangles: List[Tuple[int, int, int]] = []
    face_lines: List[int] = []

    for line_number, raw in enumerate(lines, 1):
        parts = raw.split()
        if not parts:
            continue

        keyword, values = parts[0], parts[1:]

        if keyword == POSITION_RECORD:
            if len(values) != 3:
                raise ParseError(
                    f"position record must have 3 values, got {len(values)}",
                    name, line_number
                )
            try:
                positions.append(tuple(float(v) for v in values))
            except ValueError:
                raise ParseError(
                    f"position record has a non-numeric value: {raw.strip()!r}",
                    name, line_number
                ) from None

        elif keyword == FACE_RECORD:
            if len(values) != 3:
                raise ParseError(
                    f"face record must have 3 indices, got {len(values)}",
                    name, line_number
                )
            triangles.append(tuple(
                _parse_face_index(token, name, line_number) for token in values
            ))
            face_lines.append(line_number)

    if not positions:
        raise ParseError("template has no position records", name)
    if not triangles:
        raise ParseError("template has no face records", name)

    # Faces may precede positions in the file, so range-check at the end
    vertex_count = len(positions)
    for triangle, line_number in zip(triangles, face_lines):
        for index in triangle:
            if index >= vertex_count:
                raise ParseError(
                    f"face index {index + 1} exceeds the {vertex_count} positions",
                    name, line_number
                )

    return MeshTemplate(name=name, positions=positions, triangles=triangles)


def load_template(filepath: Union[str, Path]) -> MeshTemplate:
    """
    Load a mesh template from a text file.

    Args:
        filepath: Path to the template file

    Returns:
        MeshTemplate named after the file stem

    Raises:
        NotFoundError: If the file does not exist
        ParseError: If the file contains malformed records
    """
    filepath = Path(filepath)

    if not filepath.is_file():
        raise NotFoundError(filepath)

    with filepath.open('r', encoding='utf-8') as f:
        template = parse_template(f, name=filepath.stem)

    logger.debug(
        f"Loaded {filepath.name}: {template.vertex_count:,} vertices, "
        f"{template.triangle_count:,} triangles"
    )

    return template


class TemplateStore:
    """
    Ordered registry of mesh templates.

    Template ids are the insertion positions, so instances can refer to a
    template by a small integer. Templates are loaded once and never removed.
    """

    def __init__(self):
        self._templates: List[MeshTemplate] = []

    def add(self, template: MeshTemplate) -> int:
        """Register a template and return its id."""
        self._templates.append(template)
        return len(self._templates) - 1

    def load(self, filepath: Union[str, Path]) -> int:
        """Load a template file and return its id."""
        return self.add(load_template(filepath))

    def get(self, template_id: int) -> MeshTemplate:
        if not 0 <= template_id < len(self._templates):
            raise KeyError(f"Unknown template id: {template_id}")
        return self._templates[template_id]

    @property
    def names(self) -> List[str]:
        return [t.name for t in self._templates]

    def max_bounding_box_length(self) -> float:
        """Largest bounding box diagonal over all templates."""
        if not self._templates:
            return 0.0
        return max(t.bounding_box_length for t in self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[MeshTemplate]:
        return iter(self._templates)

    def __repr__(self) -> str:
        return f"TemplateStore(templates={self.names})"
