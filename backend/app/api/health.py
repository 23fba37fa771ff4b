"""Health check + relay status."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_pipeline
from app.models.responses import HealthResponse
from app.moderation.pipeline import ModerationPipeline

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(pipeline: ModerationPipeline = Depends(get_pipeline)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        live_drawings=len(pipeline.registry),
        flagged_drawings=pipeline.registry.flagged_count,
        pending_checks=pipeline.coordinator.pending_count,
        delegate_online=pipeline.coordinator.online,
        ocr_ready=pipeline.classifier.ready,
    )
