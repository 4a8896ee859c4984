import asyncio
from typing import Callable, Optional

from vlmcam.adapters.camera.base import CameraAdapter

HINT = "Ensure the camera is connected and not in use by another process."


class CameraLifecycle:
    """Owns the single capture device: acquire, release, active flag."""

    def __init__(self, camera_factory: Callable[[], CameraAdapter], status_store):
        self._factory = camera_factory
        self.status = status_store
        self._camera: Optional[CameraAdapter] = None
        self._pending: Optional[asyncio.Task] = None
        self._pending_epoch = 0
        self._acquired_once = False
        self._epoch = 0   # bumped by release(); an open from an older epoch is dropped

    @property
    def active(self) -> bool:
        return self._camera is not None

    @property
    def camera(self) -> Optional[CameraAdapter]:
        return self._camera

    async def acquire(self) -> bool:
        """Open the device unless one is already held. Never raises."""
        call_epoch = self._epoch
        while self._camera is None:
            # concurrent callers share one pending open, so a second device is never requested
            if self._pending is None:
                self._pending_epoch = self._epoch
                self._pending = asyncio.get_running_loop().create_task(self._open(self._epoch))
            pending_epoch = self._pending_epoch
            ok = await asyncio.shield(self._pending)
            if ok or pending_epoch == call_epoch or call_epoch != self._epoch:
                return ok
            # the open we waited on predates a release(); request a fresh device
        return True

    async def close(self):
        """Teardown: release, then wait out any open still running in a worker thread."""
        self.release()
        pending = self._pending
        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)

    async def _open(self, epoch: int) -> bool:
        camera = self._factory()
        try:
            await asyncio.to_thread(camera.open)
        except Exception as e:
            self.status.log(f"camera: acquire failed {type(e).__name__}: {e}")
            self.status.publish(f"Error accessing camera: {type(e).__name__} - {e}. {HINT}", error=True)
            return False
        finally:
            self._pending = None

        if epoch != self._epoch:
            # release() ran while the device was opening
            camera.release()
            self.status.log("camera: released during acquire, dropping device")
            return False

        self._camera = camera
        if self._acquired_once:
            self.status.publish("Camera restarted. Ready to start processing.")
        else:
            self.status.publish("Camera access granted. Ready to start.")
        self._acquired_once = True
        self.status.log(f"camera: active ({type(camera).__name__})")
        return True

    def release(self):
        self._epoch += 1
        if self._camera is not None:
            self._camera.release()
            self._camera = None
            self.status.log("camera: released")
        self.status.publish("Camera stopped.")
