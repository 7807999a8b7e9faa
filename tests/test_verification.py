"""Tests for the reference dump and its tolerant comparison."""

import numpy as np
import pytest
import torch


class TestSnapshot:

    def test_small_scene_is_zero_padded(self):
        from instanced_motion.verification.compare import DUMP_SIZE, snapshot_image_buffer

        positions = torch.arange(12, dtype=torch.float32).reshape(3, 4)
        image = snapshot_image_buffer(positions)

        assert image.shape == (DUMP_SIZE,)
        assert image.dtype == np.float32
        assert image[:12].tolist() == list(range(12))
        assert not image[12:].any()

    def test_large_scene_is_truncated(self):
        from instanced_motion.verification.compare import DUMP_SIZE, snapshot_image_buffer

        positions = torch.ones(DUMP_SIZE // 4 + 10, 4)
        image = snapshot_image_buffer(positions)
        assert image.shape == (DUMP_SIZE,)
        assert (image == 1.0).all()

    def test_dump_size_matches_image(self):
        from instanced_motion.verification.compare import DUMP_SIZE

        assert DUMP_SIZE == 256 * 256 * 4


class TestCompareArrays:

    def test_identical_passes(self):
        from instanced_motion.verification.compare import compare_arrays

        data = np.linspace(-5, 5, 100, dtype=np.float32)
        result = compare_arrays(data, data.copy(), epsilon=10.0, threshold=0.30)

        assert result.passed
        assert result.mismatches == 0
        assert result.max_error == 0.0

    def test_differences_below_epsilon_are_not_errors(self):
        from instanced_motion.verification.compare import compare_arrays

        reference = np.zeros(100, dtype=np.float32)
        result = compare_arrays(reference, reference + 9.5, epsilon=10.0, threshold=0.0)
        assert result.passed

    def test_difference_equal_to_epsilon_is_an_error(self):
        from instanced_motion.verification.compare import compare_arrays

        reference = np.zeros(4, dtype=np.float32)
        data = np.array([10.0, 0.0, 0.0, 0.0], dtype=np.float32)
        result = compare_arrays(reference, data, epsilon=10.0, threshold=0.0)
        assert result.mismatches == 1
        assert not result.passed

    @pytest.mark.parametrize("wrong,passed", [(0, True), (25, True), (29, True), (35, False), (100, False)])
    def test_threshold_fraction(self, wrong, passed):
        from instanced_motion.verification.compare import compare_arrays

        reference = np.zeros(100, dtype=np.float32)
        data = reference.copy()
        data[:wrong] = 50.0

        result = compare_arrays(reference, data, epsilon=10.0, threshold=0.30)
        assert result.mismatches == wrong
        assert result.passed is passed

    def test_zero_threshold_needs_exact_match(self):
        from instanced_motion.verification.compare import compare_arrays

        reference = np.zeros(1000, dtype=np.float32)
        data = reference.copy()
        data[500] = 11.0
        assert not compare_arrays(reference, data, epsilon=10.0, threshold=0.0).passed

    def test_nan_counts_as_error(self):
        from instanced_motion.verification.compare import compare_arrays

        reference = np.zeros(10, dtype=np.float32)
        data = reference.copy()
        data[3] = np.nan
        assert compare_arrays(reference, data, epsilon=10.0, threshold=0.0).mismatches == 1

    def test_size_mismatch_fails(self):
        from instanced_motion.verification.compare import compare_arrays

        result = compare_arrays(
            np.zeros(10, dtype=np.float32), np.zeros(12, dtype=np.float32),
            epsilon=10.0, threshold=1.0,
        )
        assert not result.passed
        assert result.mismatches == 2


class TestReferenceFiles:

    def test_matching_reference(self, tmp_path):
        from instanced_motion.verification.compare import (
            DUMP_SIZE, compare_with_reference, write_dump,
        )

        data = np.random.default_rng(0).normal(size=DUMP_SIZE).astype(np.float32)
        reference = write_dump(tmp_path / "ref" / "frame.bin", data)

        assert reference.stat().st_size == DUMP_SIZE * 4
        result = compare_with_reference(data, reference)
        assert result.passed
        assert result.total == DUMP_SIZE

    def test_diverging_reference(self, tmp_path):
        from instanced_motion.verification.compare import (
            DUMP_SIZE, compare_with_reference, write_dump,
        )

        reference = write_dump(tmp_path / "ref.bin", np.zeros(DUMP_SIZE, dtype=np.float32))
        data = np.full(DUMP_SIZE, 100.0, dtype=np.float32)

        result = compare_with_reference(data, reference)
        assert not result.passed
        assert result.mismatch_ratio == 1.0

    def test_truncated_reference_fails(self, tmp_path):
        from instanced_motion.verification.compare import (
            DUMP_SIZE, compare_with_reference, write_dump,
        )

        reference = write_dump(tmp_path / "short.bin", np.zeros(DUMP_SIZE // 2, dtype=np.float32))
        result = compare_with_reference(np.zeros(DUMP_SIZE, dtype=np.float32), reference)
        assert not result.passed

    def test_missing_reference(self, tmp_path):
        from instanced_motion.core.exceptions import NotFoundError
        from instanced_motion.verification.compare import compare_with_reference

        with pytest.raises(NotFoundError):
            compare_with_reference(np.zeros(4, dtype=np.float32), tmp_path / "missing.bin")

    def test_partial_float_is_rejected(self, tmp_path):
        from instanced_motion.core.exceptions import VerificationError
        from instanced_motion.verification.compare import read_dump

        path = tmp_path / "odd.bin"
        path.write_bytes(b"\x00" * 10)
        with pytest.raises(VerificationError):
            read_dump(path)

    def test_dump_is_little_endian_float32(self, tmp_path):
        from instanced_motion.verification.compare import write_dump

        path = write_dump(tmp_path / "one.bin", np.array([1.0], dtype=np.float64))
        assert path.read_bytes() == b"\x00\x00\x80\x3f"
