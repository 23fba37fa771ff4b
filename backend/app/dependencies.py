"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi.requests import HTTPConnection

from app.moderation.pipeline import ModerationPipeline


def get_pipeline(connection: HTTPConnection) -> ModerationPipeline:
    """The per-process pipeline built in the app lifespan (HTTP and WebSocket routes)."""
    return connection.app.state.pipeline
