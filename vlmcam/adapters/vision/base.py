from vlmcam.orchestrator.contracts import InferenceRequest

class VisionClient:
    async def complete(self, request: InferenceRequest) -> str:
        """Return the model's reply text. Raises InferenceError on failure."""
        raise NotImplementedError

    async def ping(self, base_url: str) -> bool:
        """True when the inference endpoint answers, used by /health."""
        return True

    async def aclose(self):
        pass
