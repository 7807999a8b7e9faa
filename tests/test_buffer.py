"""Tests for the shared buffer hand-off protocol."""

import threading
import time

import pytest
import torch


@pytest.fixture
def buffer(cpu):
    from instanced_motion.rendering.buffer import BufferOwner, SharedAnimationBuffer

    buf = SharedAnimationBuffer(5, cpu)
    yield buf
    if buf.owner is BufferOwner.COMPUTE:
        buf.release()
    buf.close()


class TestHandOff:

    def test_starts_with_display_side(self, buffer):
        from instanced_motion.rendering.buffer import BufferOwner

        assert buffer.owner is BufferOwner.DISPLAY
        assert buffer.read_view().shape == (5, 4)

    def test_acquire_release_cycle(self, buffer):
        from instanced_motion.rendering.buffer import BufferOwner

        view = buffer.acquire_for_write()
        assert buffer.owner is BufferOwner.COMPUTE
        view.positions.fill_(2.0)
        buffer.release()

        assert buffer.owner is BufferOwner.DISPLAY
        assert torch.equal(buffer.read_view(), torch.full((5, 4), 2.0))

    def test_double_acquire_is_a_protocol_violation(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        buffer.acquire_for_write()
        with pytest.raises(DeviceError, match="already mapped"):
            buffer.acquire_for_write()

    def test_release_without_acquire(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        with pytest.raises(DeviceError):
            buffer.release()

    def test_no_read_while_mapped(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        buffer.acquire_for_write()
        with pytest.raises(DeviceError):
            buffer.read_view()

    def test_view_invalid_after_release(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        view = buffer.acquire_for_write()
        buffer.release()

        assert not view.valid
        with pytest.raises(DeviceError, match="after release"):
            view.positions

    def test_mapped_context_releases_on_error(self, buffer):
        from instanced_motion.rendering.buffer import BufferOwner

        with pytest.raises(ValueError):
            with buffer.mapped():
                raise ValueError("kernel blew up")
        assert buffer.owner is BufferOwner.DISPLAY


class TestRestPose:

    def test_upload_writes_homogeneous_positions(self, buffer):
        rest = torch.arange(15, dtype=torch.float32).reshape(5, 3)
        with buffer.mapped() as view:
            view.upload_rest_pose(rest)

        data = buffer.read_view()
        assert torch.equal(data[:, :3], rest)
        assert torch.equal(data[:, 3], torch.ones(5))

    def test_upload_is_idempotent(self, buffer):
        rest = torch.randn(5, 3)
        with buffer.mapped() as view:
            view.upload_rest_pose(rest)
        first = buffer.read_view().clone()

        with buffer.mapped() as view:
            view.upload_rest_pose(rest)
        assert torch.equal(buffer.read_view(), first)

    def test_upload_shape_must_match(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        with buffer.mapped() as view:
            with pytest.raises(DeviceError):
                view.upload_rest_pose(torch.zeros(4, 3))


class TestClose:

    def test_close_is_idempotent(self, buffer):
        buffer.close()
        buffer.close()
        assert buffer.closed

    def test_closed_buffer_cannot_be_used(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        buffer.close()
        with pytest.raises(DeviceError):
            buffer.acquire_for_write()
        with pytest.raises(DeviceError):
            buffer.read_view()

    def test_context_manager_closes(self, cpu):
        from instanced_motion.rendering.buffer import SharedAnimationBuffer

        with SharedAnimationBuffer(3, cpu) as buf:
            assert not buf.closed
        assert buf.closed

    def test_close_waits_for_in_flight_frame(self, buffer):
        events = []
        acquired = threading.Event()

        def frame():
            view = buffer.acquire_for_write()
            acquired.set()
            time.sleep(0.1)
            view.positions.fill_(1.0)
            events.append('released')
            buffer.release()

        worker = threading.Thread(target=frame)
        worker.start()
        assert acquired.wait(timeout=5)

        buffer.close(timeout=5)
        events.append('closed')
        worker.join(timeout=5)

        assert events == ['released', 'closed']
        assert buffer.closed

    def test_close_times_out_on_stuck_frame(self, buffer):
        from instanced_motion.core.exceptions import DeviceError

        buffer.acquire_for_write()
        with pytest.raises(DeviceError, match="Timed out"):
            buffer.close(timeout=0.05)
        assert not buffer.closed
