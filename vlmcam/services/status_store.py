from dataclasses import dataclass, field
from typing import Optional, List

from loguru import logger

MAX_LOGS = 200

@dataclass
class StatusStore:
    response_text: str = "Initializing camera..."
    last_error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    def publish(self, text: str, error: bool = False):
        """Replace the user-facing status text. Last writer wins."""
        self.response_text = text
        self.last_error = text if error else None

    def log(self, msg: str):
        logger.info(msg)
        self.logs.append(msg)
        if len(self.logs) > MAX_LOGS:
            self.logs = self.logs[-MAX_LOGS:]
