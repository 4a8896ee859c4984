"""
Frame rasterization: current camera frame -> 640px-wide JPEG data URL.

Returns None instead of raising when the device is absent or not ready;
the dispatch loop treats that as "skip this tick".
"""
import base64
import cv2
import numpy as np
from vlmcam.adapters.camera.base import CameraAdapter

TARGET_WIDTH = 640
JPEG_QUALITY = 0.8   # 0..1, mapped onto OpenCV's 0..100 scale


def scaled_size(width: int, height: int) -> tuple[int, int]:
    # floor(W * 640 / W) == 640 exactly; integer math keeps the height exact too
    w = max(1, (width * TARGET_WIDTH) // width)
    h = max(1, (height * TARGET_WIDTH) // width)
    return w, h


def encode_jpeg(frame: np.ndarray | None) -> bytes | None:
    if frame is None or frame.ndim < 2:
        return None
    height, width = frame.shape[:2]
    if not width or not height:
        return None
    w, h = scaled_size(width, height)
    resized = cv2.resize(frame, (w, h), interpolation=cv2.INTER_AREA)
    ok, buf = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, int(JPEG_QUALITY * 100)])
    if not ok:
        return None
    return buf.tobytes()


def to_data_url(jpeg: bytes) -> str:
    b64 = base64.standard_b64encode(jpeg).decode("ascii")
    return f"data:image/jpeg;base64,{b64}"


def capture_jpeg(camera: CameraAdapter | None) -> bytes | None:
    if camera is None or not camera.is_open:
        return None
    return encode_jpeg(camera.read_frame())


def capture_data_url(camera: CameraAdapter | None) -> str | None:
    jpeg = capture_jpeg(camera)
    return to_data_url(jpeg) if jpeg else None
