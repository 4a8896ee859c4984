from pydantic import BaseModel
from typing import Optional

class SettingsOut(BaseModel):
    base_url: str
    model: str
    instruction: str
    interval_ms: int

class StatusResponse(BaseModel):
    response_text: str
    last_error: Optional[str] = None
    camera_active: bool
    running: bool
    sending: bool                          # a request is in flight
    generation: int
    active_interval_ms: Optional[int] = None   # interval of the current run, None when stopped
    settings: SettingsOut
    logs: list[str]

class ConfigUpdateRequest(BaseModel):
    # all optional: only the provided fields change
    base_url: Optional[str] = None
    model: Optional[str] = None
    instruction: Optional[str] = None
    interval_ms: Optional[int] = None

class ControlResponse(BaseModel):
    ok: bool
    running: bool
    camera_active: bool
    response_text: str
    error: Optional[str] = None

class ModelOption(BaseModel):
    value: str
    label: str

class OptionsResponse(BaseModel):
    models: list[ModelOption]
    intervals_ms: list[int]
