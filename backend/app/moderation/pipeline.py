"""Moderation pipeline — drawing lifecycle, checks, flags and removal.

One ``ModerationPipeline`` per server process owns all mutable state (the
registry, the fan-out groups and the shape-check coordinator). Everything runs
on one event loop; state only changes between awaits, so nothing is locked.

Per drawing:
    1. register + publish to displays straight away (optimistic)
    2. text check (OCR + blocklist)
    3. shape check via the delegate, if one is connected
    4. no reasons -> clean, stays up
    5. reasons -> flag, notify, auto-remove after ``auto_remove_ms``
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.moderation.broadcast import Broadcaster, Connection, Group, Role
from app.moderation.classifier import ContentClassifier
from app.moderation.config import ModerationConfig
from app.moderation.drawing import Drawing, new_drawing_id
from app.moderation.registry import DrawingRegistry
from app.moderation.shape_check import ShapeCheckCoordinator

logger = logging.getLogger(__name__)

# Server → display events
NEW_DRAWING = "new-drawing"
FLAG_DRAWING = "flag-drawing"
PARDON_DRAWING = "pardon-drawing"
REMOVE_DRAWING = "remove-drawing"

# Server → moderation-console events
MODERATION_STATE = "moderation-state"
DRAWING_FLAGGED = "drawing-flagged"
DRAWING_REMOVED = "drawing-removed"
DELEGATE_ONLINE = "delegate-online"
DELEGATE_OFFLINE = "delegate-offline"


class ModerationPipeline:
    """Orchestrates optimistic publish, checks, flagging and manual overrides."""

    def __init__(
        self,
        classifier: ContentClassifier | None = None,
        config: ModerationConfig | None = None,
        registry: DrawingRegistry | None = None,
        broadcaster: Broadcaster | None = None,
        coordinator: ShapeCheckCoordinator | None = None,
    ) -> None:
        self.config = config or ModerationConfig()
        self.classifier = classifier or ContentClassifier()
        self.registry = registry if registry is not None else DrawingRegistry()
        self.broadcaster = broadcaster or Broadcaster()
        self.coordinator = coordinator or ShapeCheckCoordinator(
            timeout_s=self.config.shape_check_timeout_s
        )
        self._tasks: set[asyncio.Task[str]] = set()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def submit_in_background(self, image_payload: str, display_hint: Any = None) -> asyncio.Task[str]:
        """Schedule ``submit`` as its own task so the caller's read loop stays free."""
        task = asyncio.create_task(self.submit(image_payload, display_hint))
        self._tasks.add(task)
        task.add_done_callback(self._on_submit_done)
        return task

    def _on_submit_done(self, task: asyncio.Task[str]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Moderation task failed", exc_info=task.exception())

    async def submit(self, image_payload: str, display_hint: Any = None) -> str:
        """Run one drawing through the whole pipeline. Returns its id."""
        drawing = Drawing(id=new_drawing_id(), image_payload=image_payload, display_hint=display_hint)
        logger.info("Received drawing %s", drawing.id)

        self.registry.add(drawing)
        await self.broadcaster.publish(Group.DISPLAYS, NEW_DRAWING, drawing.to_display_event())
        await self.broadcast_state()

        reasons = await self._collect_reasons(drawing)

        if not reasons:
            logger.info("Clean: %s", drawing.id)
            return drawing.id

        if drawing.id not in self.registry:
            logger.info("Discarding verdict for %s — removed during checks", drawing.id)
            return drawing.id

        await self._flag(drawing, reasons)
        return drawing.id

    async def _collect_reasons(self, drawing: Drawing) -> list[str]:
        reasons: list[str] = []

        try:
            reasons.extend(await self.classifier.classify(drawing.image_payload))
        except Exception as e:
            logger.warning("Text check failed for %s: %s", drawing.id, e)

        if self.coordinator.online:
            reasons.extend(await self.coordinator.check(drawing.id, drawing.image_payload))
        else:
            logger.warning("Delegate not connected — skipping shape check for %s", drawing.id)

        return reasons

    async def _flag(self, drawing: Drawing, reasons: list[str]) -> None:
        drawing.flag(reasons)
        logger.warning("FLAGGED: %s — %s", drawing.id, drawing.reason)

        await self.broadcaster.publish(Group.DISPLAYS, FLAG_DRAWING, {"drawingId": drawing.id})
        await self.broadcaster.publish(
            Group.CONSOLES, DRAWING_FLAGGED, {"drawingId": drawing.id, "reasons": list(reasons)}
        )
        await self.broadcast_state()

        self.registry.schedule_removal(drawing.id, self.config.auto_remove_s, self._auto_remove)

    async def _auto_remove(self, drawing_id: str) -> None:
        await self.remove(drawing_id, self.config.auto_remove_reason)

    # ------------------------------------------------------------------
    # Manual overrides
    # ------------------------------------------------------------------

    async def remove(self, drawing_id: str, reason: str | None = None) -> bool:
        """Take a drawing down everywhere. False (and silent) if it is not live."""
        reason = reason or self.config.manual_remove_reason
        drawing = self.registry.remove(drawing_id)
        if drawing is None:
            return False

        logger.info("Removed %s — %s", drawing_id, reason)
        await self.broadcaster.publish(Group.DISPLAYS, REMOVE_DRAWING, drawing_id)
        await self.broadcaster.publish(
            Group.CONSOLES, DRAWING_REMOVED, {"drawingId": drawing_id, "reason": reason}
        )
        await self.broadcast_state()
        return True

    async def pardon(self, drawing_id: str) -> bool:
        """Clear a drawing's flag and stop its auto-removal. Checks are not re-run."""
        drawing = self.registry.get(drawing_id)
        if drawing is None:
            return False

        drawing.clear_flag()
        self.registry.cancel_removal(drawing_id)
        logger.info("Pardoned %s", drawing_id)

        await self.broadcaster.publish(Group.DISPLAYS, PARDON_DRAWING, {"drawingId": drawing_id})
        await self.broadcast_state()
        return True

    def handle_scan_response(self, correlation_id: str, reasons: list[str] | None) -> bool:
        return self.coordinator.resolve(correlation_id, reasons)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def register(self, conn: Connection, role: Role) -> None:
        if role is Role.DISPLAY:
            self.broadcaster.join(Group.DISPLAYS, conn)
            logger.info("Display registered: %s", conn.id)
            for drawing in self.registry:
                # Each send yields; skip anything removed since the loop started
                if drawing.id not in self.registry:
                    continue
                await self.broadcaster.send(conn, NEW_DRAWING, drawing.to_display_event())
                if drawing.id in self.registry and drawing.flagged:
                    await self.broadcaster.send(conn, FLAG_DRAWING, {"drawingId": drawing.id})

        elif role is Role.MODERATION_CONSOLE:
            self.broadcaster.join(Group.CONSOLES, conn)
            logger.info("Moderation console registered: %s", conn.id)
            await self.broadcaster.send(conn, MODERATION_STATE, self.registry.snapshot())
            await self.broadcaster.send(conn, self._delegate_status_event())

        elif role is Role.DELEGATE:
            logger.info("Delegate registered: %s", conn.id)
            self.coordinator.attach(conn)
            await self.broadcast_delegate_status()
            await self.coordinator.replay_pending()

    async def disconnect(self, conn: Connection) -> None:
        self.broadcaster.leave_all(conn)
        if self.coordinator.detach(conn):
            logger.warning("Delegate disconnected: %s", conn.id)
            await self.broadcast_delegate_status()

    # ------------------------------------------------------------------
    # Console broadcasts
    # ------------------------------------------------------------------

    async def broadcast_state(self) -> None:
        await self.broadcaster.publish(Group.CONSOLES, MODERATION_STATE, self.registry.snapshot())

    async def broadcast_delegate_status(self) -> None:
        event = self._delegate_status_event()
        logger.info("Delegate status: %s", "online" if self.coordinator.online else "offline")
        await self.broadcaster.publish(Group.CONSOLES, event)

    def _delegate_status_event(self) -> str:
        return DELEGATE_ONLINE if self.coordinator.online else DELEGATE_OFFLINE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Cancel in-flight moderation, every timer, and anything waiting on the delegate."""
        for task in list(self._tasks):
            task.cancel()
        self.registry.cancel_all()
        self.coordinator.cancel_all()
        logger.info("Moderation pipeline stopped")


def create_pipeline(
    classifier: ContentClassifier | None = None,
    config: ModerationConfig | None = None,
) -> ModerationPipeline:
    """Factory function for creating a pipeline instance."""
    return ModerationPipeline(classifier=classifier, config=config)
