"""Mock camera: serves synthetic frames of a fixed size, no hardware needed."""
import numpy as np
from vlmcam.adapters.camera.base import CameraAdapter

class MockCamera(CameraAdapter):
    def __init__(self, status_store, width: int = 1280, height: int = 720, fail_with: Exception | None = None):
        self.status = status_store
        self.width = width
        self.height = height
        self._fail_with = fail_with
        self._open = False
        self._frame_no = 0
        self.open_count = 0
        self.release_count = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self._open = True
        self.open_count += 1
        self.status.log(f"mock_camera: opened ({self.width}x{self.height})")

    def read_frame(self) -> np.ndarray | None:
        if not self._open:
            return None
        # width/height of 0 simulates a stream that has not produced its first frame yet
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        if frame.size:
            ramp = np.linspace(0, 255, self.width, dtype=np.uint8)
            frame[:, :, 1] = ramp
            frame[:, :, 2] = (self._frame_no * 16) % 256
        self._frame_no += 1
        return frame

    def release(self) -> None:
        if self._open:
            self._open = False
            self.release_count += 1
            self.status.log("mock_camera: released")
