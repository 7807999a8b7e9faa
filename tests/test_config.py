"""Tests for AnimationConfig validation and derived properties."""

from pathlib import Path

import pytest
import torch


class TestDefaults:

    def test_defaults_are_valid(self):
        from instanced_motion.pipeline.config import AnimationConfig

        config = AnimationConfig()

        assert [p.name for p in config.template_paths] == ['cube.obj', 'pyramid.obj']
        assert config.instances == 1500
        assert config.time_step == 0.01
        assert config.block_dim == 1024
        assert config.max_indices == 100_000_000
        assert config.refresh_delay_ms == 10
        assert config.epsilon == 10.0
        assert config.threshold == 0.30
        assert config.resolver == 'bisect'
        assert config.device == torch.device('cpu')

    def test_display_mode(self):
        from instanced_motion.pipeline.config import AnimationConfig

        config = AnimationConfig()
        assert not config.verification_mode
        assert config.should_pace_frames

    def test_verification_mode_never_paces(self, tmp_path):
        from instanced_motion.pipeline.config import AnimationConfig

        reference = tmp_path / "ref.bin"
        reference.write_bytes(b"")
        config = AnimationConfig(reference_file=str(reference))
        assert config.verification_mode
        assert isinstance(config.reference_file, Path)
        assert not config.should_pace_frames

    def test_missing_reference_is_rejected_up_front(self, tmp_path):
        from instanced_motion.core.exceptions import NotFoundError
        from instanced_motion.pipeline.config import AnimationConfig

        with pytest.raises(NotFoundError, match="ref.bin"):
            AnimationConfig(reference_file=tmp_path / "ref.bin")

    def test_zero_delay_disables_pacing(self):
        from instanced_motion.pipeline.config import AnimationConfig

        assert not AnimationConfig(refresh_delay_ms=0).should_pace_frames

    def test_normalization(self):
        from instanced_motion.pipeline.config import AnimationConfig

        config = AnimationConfig(output_dir='out', device='cpu', log_level='debug')
        assert config.output_dir == Path('out')
        assert config.device == torch.device('cpu')
        assert config.log_level == 'DEBUG'


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {'instances': 0},
        {'frames': 0},
        {'block_dim': 0},
        {'blocks_per_dispatch': 0},
        {'max_indices': 0},
        {'max_instances': 0},
        {'time_step': 0.0},
        {'time_step': -0.01},
        {'max_speed': -1.0},
        {'resolver': 'hash'},
        {'miss_frame_limit': -1},
        {'refresh_delay_ms': -5},
        {'epsilon': 0.0},
        {'threshold': 1.5},
        {'threshold': -0.1},
        {'log_level': 'LOUD'},
        {'template_paths': []},
    ])
    def test_invalid_values(self, overrides):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.pipeline.config import AnimationConfig

        with pytest.raises(ValidationError):
            AnimationConfig(**overrides)

    def test_missing_template(self, tmp_path):
        from instanced_motion.core.exceptions import NotFoundError
        from instanced_motion.pipeline.config import AnimationConfig

        with pytest.raises(NotFoundError):
            AnimationConfig(template_paths=[tmp_path / "ghost.obj"])

    def test_unsupported_template_format(self, tmp_path):
        from instanced_motion.core.exceptions import ValidationError
        from instanced_motion.pipeline.config import AnimationConfig

        path = tmp_path / "mesh.ply"
        path.write_text("ply\n")
        with pytest.raises(ValidationError, match="Unsupported format"):
            AnimationConfig(template_paths=[path])


class TestDeviceSelection:

    def test_cpu_by_default(self):
        from instanced_motion.core.validator import select_device

        assert select_device() == torch.device('cpu')

    def test_explicit_device_wins(self):
        from instanced_motion.core.validator import select_device

        assert select_device(gpu=True, device='cpu') == torch.device('cpu')

    def test_cuda_unavailable(self, monkeypatch):
        from instanced_motion.core.exceptions import DeviceError
        from instanced_motion.core.validator import validate_device

        monkeypatch.setattr(torch.cuda, 'is_available', lambda: False)
        with pytest.raises(DeviceError, match="CUDA requested but not available"):
            validate_device('cuda')

    def test_missing_cuda_ordinal(self, monkeypatch):
        from instanced_motion.core.exceptions import DeviceError
        from instanced_motion.core.validator import validate_device

        monkeypatch.setattr(torch.cuda, 'is_available', lambda: True)
        monkeypatch.setattr(torch.cuda, 'device_count', lambda: 1)
        with pytest.raises(DeviceError, match="CUDA device 3"):
            validate_device('cuda:3')

    def test_malformed_device(self):
        from instanced_motion.core.exceptions import DeviceError
        from instanced_motion.core.validator import validate_device

        with pytest.raises(DeviceError):
            validate_device('warp-drive')
