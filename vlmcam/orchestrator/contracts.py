from dataclasses import dataclass
from enum import Enum
from typing import Optional

INTERVAL_OPTIONS_MS = (250, 500, 1000, 2000)

class LoopState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"

class DispatchGuard(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"

@dataclass
class LoopSettings:
    base_url: str = "http://localhost:11434"
    model: str = "smolvlm"
    instruction: str = "What do you see?"
    interval_ms: int = 1000

@dataclass
class InferenceRequest:
    base_url: str
    model: str
    instruction: str
    image_url: str             # data:image/jpeg;base64,...

@dataclass
class TickResult:
    ok: bool
    text: Optional[str] = None          # published status text, None when skipped
    skipped: bool = False               # dropped because a request was already in flight
    error_code: Optional[str] = None
    generation: int = 0
    duration_ms: int = 0
    published: bool = False             # False when a stale reply was discarded
