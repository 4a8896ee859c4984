ERR_BUSY = "BUSY"
ERR_CAPTURE = "CAPTURE_FAILED"
ERR_INFERENCE = "INFERENCE_FAILED"
ERR_UNKNOWN = "UNKNOWN"


class VlmcamError(Exception):
    pass


class CameraAcquireError(VlmcamError):
    """Capture device could not be opened (missing, busy, no permission)."""


class InferenceError(VlmcamError):
    """Inference endpoint unreachable or answered with a non-2xx status."""


class IntervalLockedError(VlmcamError):
    """Polling interval changed while the loop is running."""
