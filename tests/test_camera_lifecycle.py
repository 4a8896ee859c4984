"""Tests for CameraLifecycle acquire/release semantics."""

import asyncio
import threading

import pytest

from conftest import CameraFactory
from vlmcam.adapters.camera.mock_camera import MockCamera
from vlmcam.orchestrator.camera_lifecycle import CameraLifecycle
from vlmcam.orchestrator.errors import CameraAcquireError


class TestAcquire:
    @pytest.mark.asyncio
    async def test_acquire_marks_active(self, lifecycle, camera_factory, status):
        assert not lifecycle.active

        ok = await lifecycle.acquire()

        assert ok
        assert lifecycle.active
        assert lifecycle.camera is camera_factory.created[0]
        assert status.response_text == "Camera access granted. Ready to start."

    @pytest.mark.asyncio
    async def test_acquire_is_idempotent(self, lifecycle, camera_factory):
        await lifecycle.acquire()
        await lifecycle.acquire()

        assert len(camera_factory.created) == 1
        assert camera_factory.created[0].open_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_acquire_requests_one_device(self, lifecycle, camera_factory):
        results = await asyncio.gather(lifecycle.acquire(), lifecycle.acquire(), lifecycle.acquire())

        assert results == [True, True, True]
        assert len(camera_factory.created) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc,name", [
        (CameraAcquireError("could not open video device 0"), "CameraAcquireError"),
        (PermissionError("access denied"), "PermissionError"),
    ])
    async def test_failure_reports_error_name_and_message(self, status, exc, name):
        lifecycle = CameraLifecycle(CameraFactory(status, fail_with=exc), status)

        ok = await lifecycle.acquire()

        assert not ok
        assert not lifecycle.active
        assert name in status.response_text
        assert str(exc) in status.response_text
        assert status.last_error == status.response_text

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, status):
        factory = CameraFactory(status, fail_with=CameraAcquireError("busy"))
        lifecycle = CameraLifecycle(factory, status)
        assert not await lifecycle.acquire()

        factory.fail_with = None
        assert await lifecycle.acquire()
        assert lifecycle.active


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_stops_device(self, lifecycle, camera_factory, status):
        await lifecycle.acquire()
        cam = camera_factory.created[0]

        lifecycle.release()

        assert not lifecycle.active
        assert lifecycle.camera is None
        assert cam.release_count == 1
        assert not cam.is_open
        assert status.response_text == "Camera stopped."

    def test_release_without_device_is_noop(self, lifecycle):
        lifecycle.release()
        lifecycle.release()
        assert not lifecycle.active

    @pytest.mark.asyncio
    async def test_reacquire_after_release(self, lifecycle, camera_factory, status):
        await lifecycle.acquire()
        lifecycle.release()

        assert await lifecycle.acquire()

        assert len(camera_factory.created) == 2
        assert status.response_text == "Camera restarted. Ready to start processing."

    @pytest.mark.asyncio
    async def test_release_during_acquire_drops_device(self, status):
        gate = threading.Event()

        class SlowCamera(MockCamera):
            def open(self):
                gate.wait(timeout=2)
                super().open()

        cams = []

        def factory():
            cams.append(SlowCamera(status))
            return cams[-1]

        lifecycle = CameraLifecycle(factory, status)
        task = asyncio.create_task(lifecycle.acquire())
        await asyncio.sleep(0.05)

        lifecycle.release()
        gate.set()

        assert await task is False
        assert not lifecycle.active
        assert cams[0].release_count == 1

    @pytest.mark.asyncio
    async def test_acquire_after_release_during_acquire_opens_new_device(self, status):
        gate = threading.Event()

        class SlowCamera(MockCamera):
            def open(self):
                gate.wait(timeout=2)
                super().open()

        cams = []

        def factory():
            cams.append(SlowCamera(status))
            return cams[-1]

        lifecycle = CameraLifecycle(factory, status)
        first = asyncio.create_task(lifecycle.acquire())
        await asyncio.sleep(0.05)
        lifecycle.release()
        second = asyncio.create_task(lifecycle.acquire())
        await asyncio.sleep(0.05)
        gate.set()

        assert await first is False
        assert await second is True
        assert lifecycle.active
        assert len(cams) == 2
        assert cams[0].release_count == 1
        assert lifecycle.camera is cams[1]

    @pytest.mark.asyncio
    async def test_close_waits_for_pending_open(self, status):
        gate = threading.Event()

        class SlowCamera(MockCamera):
            def open(self):
                gate.wait(timeout=2)
                super().open()

        cams = []

        def factory():
            cams.append(SlowCamera(status))
            return cams[-1]

        lifecycle = CameraLifecycle(factory, status)
        acquiring = asyncio.create_task(lifecycle.acquire())
        await asyncio.sleep(0.05)

        asyncio.get_running_loop().call_later(0.05, gate.set)
        await lifecycle.close()

        assert lifecycle._pending is None
        assert not lifecycle.active
        assert cams[0].release_count == 1
        assert await acquiring is False
