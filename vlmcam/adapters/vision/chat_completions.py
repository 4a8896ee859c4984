"""
OpenAI-compatible chat-completions client for local VLM servers
(Ollama, llama.cpp server, LM Studio, ...).

One POST per frame:
  POST <base>/v1/chat/completions
  {"model": ..., "max_tokens": 200,
   "messages": [{"role": "user", "content": [text part, image_url part]}]}
"""
import httpx
from vlmcam.adapters.vision.base import VisionClient
from vlmcam.orchestrator.contracts import InferenceRequest
from vlmcam.orchestrator.errors import InferenceError

MAX_TOKENS = 200
NO_CONTENT = "(no content)"
COMPLETIONS_PATH = "/v1/chat/completions"


def completions_url(base_url: str) -> str:
    # only one trailing slash is dropped
    base = base_url[:-1] if base_url.endswith("/") else base_url
    return f"{base}{COMPLETIONS_PATH}"


def build_payload(req: InferenceRequest) -> dict:
    return {
        "model": req.model,
        "max_tokens": MAX_TOKENS,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": req.instruction},
                    {"type": "image_url", "image_url": {"url": req.image_url}},
                ],
            }
        ],
    }


def extract_content(data) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return NO_CONTENT
    if isinstance(content, str):
        return content
    # some servers answer with a list of content parts
    if isinstance(content, list):
        texts = [p["text"] for p in content
                 if isinstance(p, dict) and p.get("type") == "text" and isinstance(p.get("text"), str)]
        if texts:
            return "\n".join(texts)
    return NO_CONTENT


class ChatCompletionsClient(VisionClient):
    def __init__(self, status_store, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None):
        self.status = status_store
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def complete(self, req: InferenceRequest) -> str:
        url = completions_url(req.base_url)
        self.status.log(f"chat_completions: POST {url} model={req.model}")
        try:
            resp = await self._client.post(url, json=build_payload(req))
        except httpx.HTTPError as e:
            self.status.log(f"chat_completions: transport error {type(e).__name__}: {e}")
            raise InferenceError(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            self.status.log(f"chat_completions: HTTP {resp.status_code} — {resp.text[:300]}")
            raise InferenceError(f"Server error {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise InferenceError(f"invalid JSON in response: {e}") from e

        reply = extract_content(data)
        self.status.log(f"chat_completions: {len(reply)} chars")
        return reply

    async def ping(self, base_url: str) -> bool:
        base = base_url[:-1] if base_url.endswith("/") else base_url
        try:
            resp = await self._client.get(f"{base}/v1/models", timeout=5.0)
        except httpx.HTTPError:
            return False
        return resp.is_success

    async def aclose(self):
        await self._client.aclose()
