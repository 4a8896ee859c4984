"""Shared fixtures: mock camera factory, recorded inference transport, helpers."""

import asyncio
import base64
import json

import cv2
import httpx
import numpy as np
import pytest

from vlmcam.adapters.camera.mock_camera import MockCamera
from vlmcam.adapters.vision.chat_completions import ChatCompletionsClient
from vlmcam.orchestrator.camera_lifecycle import CameraLifecycle
from vlmcam.services.status_store import StatusStore


class CameraFactory:
    """Builds MockCameras and remembers every one it handed out."""

    def __init__(self, status, width=1280, height=720, fail_with=None):
        self.status = status
        self.width = width
        self.height = height
        self.fail_with = fail_with
        self.created: list[MockCamera] = []

    def __call__(self) -> MockCamera:
        cam = MockCamera(self.status, width=self.width, height=self.height, fail_with=self.fail_with)
        self.created.append(cam)
        return cam


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a canned response."""

    def __init__(self, status_code=200, body=None, text=None, exc=None, gate: asyncio.Event | None = None):
        self.status_code = status_code
        self.body = body if body is not None else {"choices": [{"message": {"content": "ok"}}]}
        self.text = text
        self.exc = exc
        self.gate = gate
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.exc is not None:
            raise self.exc(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json(self, i=0) -> dict:
        return json.loads(self.requests[i].content)


def connection_refused(request):
    return httpx.ConnectError("[Errno 111] Connection refused", request=request)


def decode_data_url(data_url: str) -> np.ndarray:
    prefix, _, b64 = data_url.partition(",")
    assert prefix == "data:image/jpeg;base64"
    return cv2.imdecode(np.frombuffer(base64.b64decode(b64), np.uint8), cv2.IMREAD_COLOR)


async def wait_for(predicate, timeout: float = 2.0, step: float = 0.01):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(step)


@pytest.fixture
def status():
    return StatusStore()


@pytest.fixture
def camera_factory(status):
    return CameraFactory(status)


@pytest.fixture
def lifecycle(camera_factory, status):
    return CameraLifecycle(camera_factory, status)


@pytest.fixture
def make_client(status):
    def _make(handler) -> ChatCompletionsClient:
        return ChatCompletionsClient(status, transport=httpx.MockTransport(handler))
    return _make
