from abc import ABC, abstractmethod

import numpy as np

class CameraAdapter(ABC):
    @abstractmethod
    def open(self) -> None:
        """Acquire the device. Raises CameraAcquireError on failure. Blocking."""
        ...

    @abstractmethod
    def read_frame(self) -> np.ndarray | None:
        """Grab the current BGR frame. Returns None when nothing is available."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Stop every underlying hardware handle. Safe to call twice."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...
