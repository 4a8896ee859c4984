"""
Fake VLM server for testing vlmcam without a real model.

Simulates an OpenAI-compatible chat-completions endpoint on port 11434.
Decodes the incoming frame and answers with its size and the instruction.

Usage:
    python vlmcam/scripts/fake_vlm_server.py
    FAKE_VLM_DELAY=2.5 python vlmcam/scripts/fake_vlm_server.py   # slow model
    FAKE_VLM_STATUS=500 python vlmcam/scripts/fake_vlm_server.py  # failing model
"""

import base64
import os
import time

import cv2
import numpy as np
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

DELAY_S = float(os.getenv("FAKE_VLM_DELAY", "0.3"))
FAIL_STATUS = int(os.getenv("FAKE_VLM_STATUS", "0"))

app = FastAPI(title="fake-vlm-server")


def _image_size(data_url: str) -> str:
    _, _, b64 = data_url.partition("base64,")
    img = cv2.imdecode(np.frombuffer(base64.b64decode(b64), np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        return "undecodable image"
    h, w = img.shape[:2]
    return f"{w}x{h}"


@app.post("/v1/chat/completions")
async def chat_completions(request: Request):
    body = await request.json()
    if FAIL_STATUS:
        print(f"[vlm] failing with {FAIL_STATUS}")
        return PlainTextResponse("fake failure", status_code=FAIL_STATUS)

    parts = body["messages"][0]["content"]
    text = next(p["text"] for p in parts if p["type"] == "text")
    size = _image_size(next(p["image_url"]["url"] for p in parts if p["type"] == "image_url"))
    print(f"[vlm] model={body.get('model')} max_tokens={body.get('max_tokens')} image={size} — thinking {DELAY_S:.1f}s ...")
    time.sleep(DELAY_S)
    return {"choices": [{"message": {"role": "assistant", "content": f"[{time.strftime('%H:%M:%S')}] saw a {size} frame; you asked: {text}"}}]}


@app.get("/v1/models")
async def models():
    return {"object": "list", "data": [{"id": "smolvlm", "object": "model"}]}


if __name__ == "__main__":
    print("Fake VLM server starting on http://localhost:11434")
    uvicorn.run(app, host="0.0.0.0", port=11434)
