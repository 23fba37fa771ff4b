"""API response models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    live_drawings: int = 0
    flagged_drawings: int = 0
    pending_checks: int = 0
    delegate_online: bool = False
    ocr_ready: bool = False
