from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import Response

from vlmcam.adapters.camera.base import CameraAdapter
from vlmcam.adapters.vision.base import VisionClient
from vlmcam.orchestrator.camera_lifecycle import CameraLifecycle
from vlmcam.orchestrator.contracts import INTERVAL_OPTIONS_MS
from vlmcam.orchestrator.errors import IntervalLockedError
from vlmcam.orchestrator.frame_capture import capture_jpeg
from vlmcam.orchestrator.state_machine import CaptureLoop
from vlmcam.services.config import MODEL_OPTIONS, Settings
from vlmcam.services.models import (
    ConfigUpdateRequest, ControlResponse, ModelOption, OptionsResponse, SettingsOut, StatusResponse,
)
from vlmcam.services.status_store import StatusStore


router = APIRouter()


def build_camera_factory(settings: Settings, status: StatusStore) -> Callable[[], CameraAdapter]:
    # Camera adapter: CAMERA_ADAPTER = cv2 | mock (default: cv2)
    if settings.camera_adapter == "mock":
        from vlmcam.adapters.camera.mock_camera import MockCamera
        width, height = settings.mock_camera_size
        status.log(f"camera adapter: mock {width}x{height}")
        return lambda: MockCamera(status, width=width, height=height)

    from vlmcam.adapters.camera.cv2_camera import CV2Camera
    status.log(f"camera adapter: cv2 index={settings.camera_index}")
    return lambda: CV2Camera(status, index=settings.camera_index)


def build_vision(settings: Settings, status: StatusStore) -> VisionClient:
    # Vision adapter: VISION_ADAPTER = http | mock (default: http)
    if settings.vision_adapter == "mock":
        from vlmcam.adapters.vision.mock_vision import MockVisionClient
        vision = MockVisionClient(status)
    else:
        from vlmcam.adapters.vision.chat_completions import ChatCompletionsClient
        vision = ChatCompletionsClient(status, timeout=settings.timeout_s)
    status.log(f"vision adapter: {type(vision).__name__}")
    return vision


def create_app(settings: Optional[Settings] = None,
               camera_factory: Optional[Callable[[], CameraAdapter]] = None,
               vision: Optional[VisionClient] = None,
               status: Optional[StatusStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    status = status or StatusStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = vision or build_vision(settings, status)
        factory = camera_factory or build_camera_factory(settings, status)
        lifecycle = CameraLifecycle(factory, status)
        loop = CaptureLoop(lifecycle, client, status, settings=settings.loop_settings(),
                           discard_stale_replies=settings.discard_stale_replies)
        app.state.status = status
        app.state.loop = loop
        await lifecycle.acquire()
        try:
            yield
        finally:
            await loop.dispose()
            await client.aclose()

    app = FastAPI(title="vlmcam", lifespan=lifespan)
    app.include_router(router)
    return app


def _loop(request: Request) -> CaptureLoop:
    return request.app.state.loop


def _control(loop: CaptureLoop, ok: bool = True, error: str | None = None) -> ControlResponse:
    return ControlResponse(
        ok=ok,
        running=loop.running,
        camera_active=loop.camera.active,
        response_text=loop.status.response_text,
        error=error,
    )


def _settings_out(loop: CaptureLoop) -> SettingsOut:
    s = loop.settings
    return SettingsOut(base_url=s.base_url, model=s.model, instruction=s.instruction, interval_ms=s.interval_ms)


@router.get("/status", response_model=StatusResponse)
async def get_status(request: Request):
    loop = _loop(request)
    return StatusResponse(
        response_text=loop.status.response_text,
        last_error=loop.status.last_error,
        camera_active=loop.camera.active,
        running=loop.running,
        sending=loop.sending,
        generation=loop.generation,
        active_interval_ms=loop.active_interval_ms,
        settings=_settings_out(loop),
        logs=loop.status.logs,
    )


@router.get("/config", response_model=SettingsOut)
async def get_config(request: Request):
    return _settings_out(_loop(request))


@router.post("/config", response_model=SettingsOut)
async def update_config(req: ConfigUpdateRequest, request: Request):
    loop = _loop(request)
    if req.interval_ms is not None and req.interval_ms != loop.settings.interval_ms:
        try:
            loop.set_interval(req.interval_ms)
        except IntervalLockedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    loop.update_settings(base_url=req.base_url, model=req.model, instruction=req.instruction)
    loop.status.log(f"CONFIG {req.model_dump(exclude_none=True)}")
    return _settings_out(loop)


@router.get("/models", response_model=OptionsResponse)
async def options():
    return OptionsResponse(
        models=[ModelOption(value=v, label=label) for v, label in MODEL_OPTIONS],
        intervals_ms=list(INTERVAL_OPTIONS_MS),
    )


@router.post("/start", response_model=ControlResponse)
async def start(request: Request):
    loop = _loop(request)
    if not loop.start():
        return _control(loop, ok=False, error="already running")
    loop.status.log("START")
    return _control(loop)


@router.post("/pause", response_model=ControlResponse)
async def pause(request: Request):
    loop = _loop(request)
    loop.status.log("PAUSE")
    loop.pause()
    return _control(loop)


@router.post("/stop", response_model=ControlResponse)
async def stop_and_release(request: Request):
    loop = _loop(request)
    loop.status.log("STOP")
    loop.stop_and_release()
    return _control(loop)


@router.post("/camera/start", response_model=ControlResponse)
async def camera_start(request: Request):
    """Restart the camera after Stop. Only while processing is stopped."""
    loop = _loop(request)
    if loop.running:
        return _control(loop, ok=False, error="running")
    ok = await loop.camera.acquire()
    return _control(loop, ok=ok, error=None if ok else loop.status.last_error)


@router.post("/camera/stop", response_model=ControlResponse)
async def camera_stop(request: Request):
    loop = _loop(request)
    if loop.running:
        return _control(loop, ok=False, error="running")
    loop.camera.release()
    return _control(loop)


@router.get("/frame.jpg")
async def preview_frame(request: Request):
    """Live preview for the web page: one 640px JPEG of the current frame."""
    jpeg = capture_jpeg(_loop(request).camera.camera)
    if jpeg is None:
        raise HTTPException(status_code=503, detail="camera inactive")
    return Response(content=jpeg, media_type="image/jpeg", headers={"Cache-Control": "no-store"})


@router.get("/health")
async def health(request: Request):
    loop = _loop(request)
    checks = {
        "api": True,
        "camera_active": loop.camera.active,
        "vision_adapter": type(loop.vision).__name__,
        "base_url": loop.settings.base_url,
    }
    checks["inference_reachable"] = await loop.vision.ping(loop.settings.base_url)
    checks["all_ok"] = checks["api"] and checks["inference_reachable"]
    return checks
