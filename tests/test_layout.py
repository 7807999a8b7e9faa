"""Tests for instance packing: vertex ranges, index offsets and ceilings."""

import numpy as np
import pytest


class TestBuildLayout:

    def test_two_templates_packed_back_to_back(self, store, still):
        from instanced_motion.core.layout import build_layout

        layout = build_layout(store, [0, 1], still)

        assert layout.total_vertices == 7
        assert layout.total_indices == 9
        assert layout.vertex_range(0) == (0, 4)
        assert layout.vertex_range(1) == (4, 7)
        # quad indices unchanged, triangle indices shifted by the quad's 4 vertices
        assert layout.indices.tolist() == [0, 1, 2, 0, 2, 3, 4, 5, 6]

    def test_vertices_are_template_copies(self, store, still, quad_template, triangle_template):
        from instanced_motion.core.layout import build_layout

        layout = build_layout(store, [1, 0, 1], still)

        np.testing.assert_array_equal(layout.vertices[0:3], triangle_template.positions)
        np.testing.assert_array_equal(layout.vertices[3:7], quad_template.positions)
        np.testing.assert_array_equal(layout.vertices[7:10], triangle_template.positions)
        assert layout.vertices.dtype == np.float32
        assert layout.vertices.flags.writeable

    def test_ranges_partition_the_vertex_array(self, store, still):
        from instanced_motion.core.layout import alternating_assignment, build_layout

        layout = build_layout(store, alternating_assignment(11, 2), still)

        counts = [inst.vertex_count for inst in layout.instances]
        assert sum(counts) == layout.total_vertices

        expected_start = 0
        for i in range(layout.instance_count):
            start, stop = layout.vertex_range(i)
            assert start == expected_start
            assert stop - start == counts[i]
            expected_start = stop
        assert expected_start == layout.total_vertices

    def test_indices_stay_inside_owning_range(self, store, still):
        from instanced_motion.core.layout import alternating_assignment, build_layout

        layout = build_layout(store, alternating_assignment(6, 2), still)

        cursor = 0
        for i, inst in enumerate(layout.instances):
            count = store.get(inst.template_id).indices.shape[0]
            start, stop = layout.vertex_range(i)
            chunk = layout.indices[cursor:cursor + count]
            assert chunk.min() >= start
            assert chunk.max() < stop
            cursor += count
        assert cursor == layout.total_indices

    def test_velocity_drawn_once_per_instance(self, store):
        from instanced_motion.core.layout import build_layout

        calls = []

        def velocity(i):
            calls.append(i)
            return (float(i), 0.0, 0.0)

        layout = build_layout(store, [0, 1, 0], velocity)
        assert calls == [0, 1, 2]
        assert [inst.velocity for inst in layout.instances] == [
            (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0)
        ]

    def test_owner_of(self, store, still):
        from instanced_motion.core.layout import build_layout

        layout = build_layout(store, [0, 1, 0], still)

        assert [layout.owner_of(p) for p in range(11)] == [0] * 4 + [1] * 3 + [2] * 4
        assert layout.owner_of(11) == -1
        assert layout.owner_of(-1) == -1

    def test_descriptor_arrays(self, scene):
        counts, velocities = scene.descriptor_arrays()

        assert counts.tolist() == [4, 3, 4, 3, 4]
        assert velocities.shape == (5, 3)
        assert velocities.dtype == np.float32
        assert velocities[1].tolist() == [0.0, 2.0, 0.0]

    def test_bounding_box_length_from_store(self, store, still):
        from instanced_motion.core.layout import build_layout

        layout = build_layout(store, [1], still)
        assert layout.bounding_box_length == pytest.approx(store.max_bounding_box_length())

    def test_no_instances(self, store, still):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.core.layout import build_layout

        with pytest.raises(ValidationError):
            build_layout(store, [], still)


class TestCapacity:
    """quad = 6 indices, triangle = 3 indices; [0, 1, 0] needs 15."""

    def test_exactly_at_ceiling(self, store, still):
        from instanced_motion.core.layout import build_layout

        layout = build_layout(store, [0, 1, 0], still, max_indices=15)
        assert layout.total_indices == 15

    def test_one_over_ceiling_fails_before_allocation(self, store):
        from instanced_motion.core.exceptions import CapacityExceeded
        from instanced_motion.core.layout import build_layout

        calls = []

        with pytest.raises(CapacityExceeded) as exc_info:
            build_layout(store, [0, 1, 0], calls.append, max_indices=14)

        assert exc_info.value.kind == 'indices'
        assert exc_info.value.requested == 15
        assert exc_info.value.limit == 14
        assert calls == []

    def test_instance_ceiling(self, store, still):
        from instanced_motion.core.exceptions import CapacityExceeded
        from instanced_motion.core.layout import build_layout

        build_layout(store, [0, 1, 0], still, max_instances=3)

        with pytest.raises(CapacityExceeded) as exc_info:
            build_layout(store, [0, 1, 0, 1], still, max_instances=3)
        assert exc_info.value.kind == 'instances'

    def test_check_capacity_returns_index_total(self, store):
        from instanced_motion.core.layout import check_capacity

        assert check_capacity(store, [0, 0, 1, 1]) == 18

    def test_message_names_the_ceiling(self):
        from instanced_motion.core.exceptions import CapacityExceeded

        err = CapacityExceeded('indices', 100_000_003, 100_000_000)
        assert "100,000,003 indices" in str(err)
        assert "100,000,000" in str(err)


class TestObjectInstance:

    @pytest.mark.parametrize("count", [0, -3])
    def test_instance_must_own_vertices(self, count):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.core.layout import ObjectInstance

        with pytest.raises(ValidationError):
            ObjectInstance(template_id=0, vertex_count=count, velocity=(0, 0, 0))

    def test_velocity_coerced_to_floats(self):
        from instanced_motion.core.layout import ObjectInstance

        inst = ObjectInstance(template_id=0, vertex_count=3, velocity=np.array([1, 2, 3]))
        assert inst.velocity == (1.0, 2.0, 3.0)
        assert all(type(v) is float for v in inst.velocity)


class TestAssignmentAndVelocities:

    def test_alternating_assignment(self):
        from instanced_motion.core.layout import alternating_assignment

        assert alternating_assignment(5, 2) == [0, 1, 0, 1, 0]
        assert alternating_assignment(4, 3) == [0, 1, 2, 0]
        assert alternating_assignment(0, 2) == []

    def test_alternating_assignment_needs_templates(self):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.core.layout import alternating_assignment

        with pytest.raises(ValidationError):
            alternating_assignment(3, 0)

    def test_sampler_bounds(self):
        from instanced_motion.core.layout import UniformVelocitySampler

        sampler = UniformVelocitySampler(max_speed=0.25, seed=3)
        for i in range(200):
            assert all(-0.25 <= v <= 0.25 for v in sampler(i))

    def test_sampler_seed_is_reproducible(self):
        from instanced_motion.core.layout import UniformVelocitySampler

        a = UniformVelocitySampler(seed=42)
        b = UniformVelocitySampler(seed=42)
        assert [a(i) for i in range(10)] == [b(i) for i in range(10)]

    def test_sampler_rejects_negative_speed(self):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.core.layout import UniformVelocitySampler

        with pytest.raises(ValidationError):
            UniformVelocitySampler(max_speed=-1.0)
