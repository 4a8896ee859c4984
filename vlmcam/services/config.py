"""
Runtime configuration from environment variables (optionally a .env file).

    VLM_BASE_URL          inference server base URL   (http://localhost:11434)
    VLM_MODEL             model identifier             (smolvlm)
    VLM_INSTRUCTION       prompt sent with each frame  (What do you see?)
    VLM_INTERVAL_MS       polling interval, 250/500/1000/2000 (1000)
    VLM_TIMEOUT_S         HTTP timeout per request     (60)
    VISION_ADAPTER        http | mock                  (http)
    CAMERA_ADAPTER        cv2 | mock                   (cv2)
    CAMERA_INDEX          OpenCV device index          (0)
    MOCK_CAMERA_SIZE      WIDTHxHEIGHT for the mock    (1280x720)
    VLMCAM_DISCARD_STALE  drop replies that arrive after pause/stop (false)
    VLMCAM_HOST / VLMCAM_PORT
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from vlmcam.orchestrator.contracts import INTERVAL_OPTIONS_MS, LoopSettings

MODEL_OPTIONS = [
    ("smolvlm", "smolvlm (GGUF)"),
    ("llava:13b", "llava:13b"),
    ("moondream", "moondream"),
    ("llava-phi", "llava-phi"),
]

_TRUE = {"1", "true", "yes", "on"}


def _parse_size(raw: str) -> tuple[int, int]:
    w, _, h = raw.lower().partition("x")
    return int(w), int(h)


@dataclass
class Settings:
    base_url: str = "http://localhost:11434"
    model: str = "smolvlm"
    instruction: str = "What do you see?"
    interval_ms: int = 1000
    timeout_s: float = 60.0
    vision_adapter: str = "http"
    camera_adapter: str = "cv2"
    camera_index: int = 0
    mock_camera_size: tuple[int, int] = (1280, 720)
    discard_stale_replies: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, dotenv_path: str | None = ".env") -> "Settings":
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)
        d = cls()
        interval = int(os.getenv("VLM_INTERVAL_MS", str(d.interval_ms)))
        if interval not in INTERVAL_OPTIONS_MS:
            raise ValueError(f"VLM_INTERVAL_MS must be one of {list(INTERVAL_OPTIONS_MS)}, got {interval}")
        return cls(
            base_url=os.getenv("VLM_BASE_URL", d.base_url),
            model=os.getenv("VLM_MODEL", d.model),
            instruction=os.getenv("VLM_INSTRUCTION", d.instruction),
            interval_ms=interval,
            timeout_s=float(os.getenv("VLM_TIMEOUT_S", str(d.timeout_s))),
            vision_adapter=os.getenv("VISION_ADAPTER", d.vision_adapter).lower(),
            camera_adapter=os.getenv("CAMERA_ADAPTER", d.camera_adapter).lower(),
            camera_index=int(os.getenv("CAMERA_INDEX", str(d.camera_index))),
            mock_camera_size=_parse_size(os.getenv("MOCK_CAMERA_SIZE", "1280x720")),
            discard_stale_replies=os.getenv("VLMCAM_DISCARD_STALE", "false").lower() in _TRUE,
            host=os.getenv("VLMCAM_HOST", d.host),
            port=int(os.getenv("VLMCAM_PORT", str(d.port))),
        )

    def loop_settings(self) -> LoopSettings:
        return LoopSettings(
            base_url=self.base_url,
            model=self.model,
            instruction=self.instruction,
            interval_ms=self.interval_ms,
        )
