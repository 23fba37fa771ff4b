"""Channel message models — the JSON frames exchanged over the relay socket."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class ChannelMessage(BaseModel):
    event: str = Field(..., description="Event name, e.g. 'register' or 'drawing'")
    data: Any = Field(default=None, description="Event payload")


class DrawingSubmission(BaseModel):
    image_payload: str = Field(
        ...,
        validation_alias=AliasChoices("imagePayload", "imageData"),
        description="Data-URL or base64 image from the input device",
    )
    display_hint: Any = Field(
        default=None,
        validation_alias=AliasChoices("displayHint", "throwSpeed"),
        description="Opaque display hint passed through to displays",
    )


class ScanResponse(BaseModel):
    correlation_id: str = Field(
        ...,
        validation_alias=AliasChoices("correlationId", "scanId"),
        description="Correlation id from the matching scan-request",
    )
    reasons: list[str] | None = Field(default=None, description="Shape violations found, if any")
