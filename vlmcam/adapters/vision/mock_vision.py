import random
from vlmcam.adapters.vision.base import VisionClient
from vlmcam.orchestrator.contracts import InferenceRequest

_REPLIES = [
    "A person sitting at a desk in front of a monitor.",
    "An empty room with a chair and a window.",
    "A hand holding a coffee mug.",
]

class MockVisionClient(VisionClient):
    def __init__(self, status_store):
        self.status = status_store
        self.requests: list[InferenceRequest] = []

    async def complete(self, request: InferenceRequest) -> str:
        # Mock: ignore the image, return a canned description
        self.requests.append(request)
        reply = random.choice(_REPLIES)
        self.status.log(f"mock_vision: {reply}")
        return reply
