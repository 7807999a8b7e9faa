import pytest
import torch


QUAD_OBJ = """\
# 4 vertices, 2 triangles
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
f 1 2 3
f 1 3 4
"""

TRIANGLE_OBJ = """\
# 3 vertices, 1 triangle
v 0 0 1
v 1 0 1
v 0 1 1
f 1 2 3
"""


@pytest.fixture
def cpu():
    return torch.device('cpu')


@pytest.fixture
def write_obj(tmp_path):
    """Write template text to <tmp>/<name>.obj and return the path."""
    def _write(name, text):
        path = tmp_path / f"{name}.obj"
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def quad_template():
    from instanced_motion.core.mesh_io import parse_template
    return parse_template(QUAD_OBJ.splitlines(), name="quad")


@pytest.fixture
def triangle_template():
    from instanced_motion.core.mesh_io import parse_template
    return parse_template(TRIANGLE_OBJ.splitlines(), name="triangle")


@pytest.fixture
def store(quad_template, triangle_template):
    """Store with template 0 = quad (4v/2t) and template 1 = triangle (3v/1t)."""
    from instanced_motion.core.mesh_io import TemplateStore
    s = TemplateStore()
    s.add(quad_template)
    s.add(triangle_template)
    return s


@pytest.fixture
def still():
    """Velocity generator for motionless instances."""
    return lambda i: (0.0, 0.0, 0.0)


@pytest.fixture
def scene(store):
    """Five alternating instances with distinct, known velocities."""
    from instanced_motion.core.layout import alternating_assignment, build_layout
    velocities = [
        (1.0, 0.0, 0.0),
        (0.0, 2.0, 0.0),
        (0.0, 0.0, 3.0),
        (-1.0, 0.5, 0.25),
        (0.5, -0.5, 1.0),
    ]
    return build_layout(store, alternating_assignment(5, 2), lambda i: velocities[i])


@pytest.fixture
def quad_text():
    return QUAD_OBJ
