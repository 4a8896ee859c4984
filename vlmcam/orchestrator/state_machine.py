import asyncio
import time
from typing import Optional

from vlmcam.adapters.vision.base import VisionClient
from vlmcam.orchestrator import errors
from vlmcam.orchestrator.camera_lifecycle import CameraLifecycle
from vlmcam.orchestrator.contracts import (
    INTERVAL_OPTIONS_MS, DispatchGuard, InferenceRequest, LoopSettings, LoopState, TickResult,
)
from vlmcam.orchestrator.frame_capture import capture_data_url

CAPTURE_FAILED_TEXT = "Failed to capture image. Stream might not be active."


class CaptureLoop:
    """
    Capture-and-dispatch loop. Stopped <-> Running, with an Idle/InFlight
    guard so at most one inference request is outstanding.

    Every tick is tagged with `generation`, bumped on start/pause/stop. Late
    replies from an older generation are still published unless
    `discard_stale_replies` is set.
    """

    def __init__(self, camera: CameraLifecycle, vision: VisionClient, status_store,
                 settings: Optional[LoopSettings] = None, discard_stale_replies: bool = False):
        self.camera = camera
        self.vision = vision
        self.status = status_store
        self.settings = settings or LoopSettings()
        self.discard_stale_replies = discard_stale_replies
        self.state = LoopState.STOPPED
        self.guard = DispatchGuard.IDLE
        self.generation = 0
        self.active_interval_ms: Optional[int] = None
        self._timer: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.state is LoopState.RUNNING

    @property
    def sending(self) -> bool:
        return self.guard is DispatchGuard.IN_FLIGHT

    # ---- transitions -------------------------------------------------

    def start(self) -> bool:
        """Stopped -> Running. Must be called from inside the event loop."""
        if self.running:
            return False
        if not self.camera.active:
            # fire-and-forget, the first tick may run before the device is up
            self._spawn(self.camera.acquire())

        self.generation += 1
        self.state = LoopState.RUNNING
        self.active_interval_ms = self.settings.interval_ms
        self.status.publish("Processing started...")
        self.status.log(f"loop: start gen={self.generation} interval={self.active_interval_ms}ms")

        self._spawn(self.tick())
        self._timer = asyncio.get_running_loop().create_task(
            self._run_timer(self.active_interval_ms / 1000.0)
        )
        return True

    def pause(self):
        """Running -> Stopped, camera left open."""
        self._halt()
        self.status.publish("Processing stopped. Camera still active.")
        self.status.log(f"loop: pause gen={self.generation}")

    def stop_and_release(self):
        """Running -> Stopped and release the capture device."""
        self._halt()
        self.camera.release()
        self.status.publish("Processing and camera stopped.")
        self.status.log(f"loop: stop_and_release gen={self.generation}")

    async def dispose(self):
        """Teardown: timer and outstanding work cancelled, device released."""
        self._halt()
        pending = [t for t in self._tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.camera.close()
        self.status.log("loop: disposed")

    def _halt(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.running:
            self.generation += 1
        self.state = LoopState.STOPPED
        self.active_interval_ms = None

    # ---- settings ----------------------------------------------------

    def set_interval(self, interval_ms: int):
        if self.running:
            raise errors.IntervalLockedError("interval can only be changed while stopped")
        if interval_ms not in INTERVAL_OPTIONS_MS:
            raise ValueError(f"interval must be one of {list(INTERVAL_OPTIONS_MS)}, got {interval_ms}")
        self.settings.interval_ms = interval_ms
        self.status.log(f"loop: interval={interval_ms}ms")

    def update_settings(self, base_url: str | None = None, model: str | None = None,
                        instruction: str | None = None):
        """Takes effect from the next tick."""
        if base_url is not None:
            self.settings.base_url = base_url
        if model is not None:
            self.settings.model = model
        if instruction is not None:
            self.settings.instruction = instruction

    # ---- dispatch ----------------------------------------------------

    async def _run_timer(self, interval_s: float):
        while True:
            await asyncio.sleep(interval_s)
            # spawned, not awaited: firings during an in-flight request hit the guard and drop
            self._spawn(self.tick())

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def tick(self) -> TickResult:
        if self.guard is DispatchGuard.IN_FLIGHT:
            return TickResult(ok=False, skipped=True, error_code=errors.ERR_BUSY, generation=self.generation)

        self.guard = DispatchGuard.IN_FLIGHT
        generation = self.generation
        t0 = time.time()
        try:
            image_url = capture_data_url(self.camera.camera)
            if image_url is None:
                return self._finish(generation, t0, CAPTURE_FAILED_TEXT, errors.ERR_CAPTURE)

            s = self.settings
            req = InferenceRequest(base_url=s.base_url, model=s.model,
                                   instruction=s.instruction, image_url=image_url)
            reply = await self.vision.complete(req)
            return self._finish(generation, t0, reply)

        except errors.InferenceError as e:
            return self._finish(generation, t0, f"Error: {e}", errors.ERR_INFERENCE)
        except Exception as e:
            self.status.log(f"loop: tick error {type(e).__name__}: {e}")
            return self._finish(generation, t0, f"Error: {e}", errors.ERR_UNKNOWN)
        finally:
            self.guard = DispatchGuard.IDLE

    def _finish(self, generation: int, t0: float, text: str, error_code: str | None = None) -> TickResult:
        dt = int((time.time() - t0) * 1000)
        stale = generation != self.generation
        published = not (stale and self.discard_stale_replies)
        if published:
            self.status.publish(text, error=error_code is not None)
        else:
            self.status.log(f"loop: dropped stale result gen={generation} (now {self.generation})")
        self.status.log(f"loop: tick gen={generation} dt={dt}ms error={error_code}")
        return TickResult(ok=error_code is None, text=text, error_code=error_code,
                          generation=generation, duration_ms=dt, published=published)
