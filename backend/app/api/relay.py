"""WS /ws — the relay channel shared by tablets, displays, consoles and the delegate.

Every frame is JSON ``{"event": ..., "data": ...}``. A client declares its
role once with ``register``; tablets just send ``drawing`` frames.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.dependencies import get_pipeline
from app.models.events import ChannelMessage, DrawingSubmission, ScanResponse
from app.moderation.broadcast import Role
from app.moderation.pipeline import ModerationPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the fan-out ``Connection`` protocol."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.id = uuid4().hex[:12]

    async def send(self, event: str, data: Any = None) -> None:
        await self.websocket.send_json({"event": event, "data": data})


Handler = Callable[[ModerationPipeline, WebSocketConnection, Any], Awaitable[None]]


async def _on_register(pipeline: ModerationPipeline, conn: WebSocketConnection, data: Any) -> None:
    role = Role.parse(data) if isinstance(data, str) else None
    if role is None:
        logger.warning("Unknown role %r from %s", data, conn.id)
        return
    await pipeline.register(conn, role)


async def _on_drawing(pipeline: ModerationPipeline, conn: WebSocketConnection, data: Any) -> None:
    submission = DrawingSubmission.model_validate(data)
    pipeline.submit_in_background(submission.image_payload, submission.display_hint)


async def _on_scan_response(pipeline: ModerationPipeline, conn: WebSocketConnection, data: Any) -> None:
    response = ScanResponse.model_validate(data)
    pipeline.handle_scan_response(response.correlation_id, response.reasons)


async def _on_remove(pipeline: ModerationPipeline, conn: WebSocketConnection, data: Any) -> None:
    if not isinstance(data, str):
        logger.warning("remove-drawing from %s without a drawing id", conn.id)
        return
    logger.info("Manual removal requested by %s: %s", conn.id, data)
    await pipeline.remove(data, pipeline.config.manual_remove_reason)


async def _on_pardon(pipeline: ModerationPipeline, conn: WebSocketConnection, data: Any) -> None:
    if not isinstance(data, str):
        logger.warning("pardon-drawing from %s without a drawing id", conn.id)
        return
    logger.info("Pardon requested by %s: %s", conn.id, data)
    await pipeline.pardon(data)


_HANDLERS: dict[str, Handler] = {
    "register": _on_register,
    "drawing": _on_drawing,
    "scan-response": _on_scan_response,
    "remove-drawing": _on_remove,
    "pardon-drawing": _on_pardon,
}


async def _dispatch(pipeline: ModerationPipeline, conn: WebSocketConnection, raw: str) -> None:
    try:
        message = ChannelMessage.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Malformed frame from %s: %s", conn.id, e)
        return

    handler = _HANDLERS.get(message.event)
    if handler is None:
        logger.warning("Unknown event %r from %s", message.event, conn.id)
        return

    try:
        await handler(pipeline, conn, message.data)
    except ValidationError as e:
        logger.warning("Invalid %s payload from %s: %s", message.event, conn.id, e)


@router.websocket("/ws")
async def relay(websocket: WebSocket, pipeline: ModerationPipeline = Depends(get_pipeline)) -> None:
    await websocket.accept()
    conn = WebSocketConnection(websocket)
    logger.info("Connected %s", conn.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                logger.warning("Ignoring binary frame from %s", conn.id)
                continue
            await _dispatch(pipeline, conn, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await pipeline.disconnect(conn)
        logger.info("Disconnected %s", conn.id)
