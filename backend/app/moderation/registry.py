"""Drawing registry — the live drawings and their auto-removal timers.

The registry is the single source of truth for what is on the displays. A
drawing is present from optimistic acceptance until it is removed; removal is
the only way out and always cancels the drawing's timer.

Usage:
    registry = DrawingRegistry()
    registry.add(drawing)
    registry.schedule_removal(drawing.id, 5.0, on_expire)
    registry.remove(drawing.id)   # cancels the timer
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator

from app.moderation.drawing import Drawing

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[str], Awaitable[None]]


class DrawingRegistry:
    """In-memory store of live drawings, keyed by drawing id."""

    def __init__(self) -> None:
        self._drawings: dict[str, Drawing] = {}
        self._timers: dict[str, asyncio.Task[None]] = {}

    def add(self, drawing: Drawing) -> None:
        if drawing.id in self._drawings:
            raise ValueError(f"Duplicate drawing ID: {drawing.id}")
        self._drawings[drawing.id] = drawing

    def get(self, drawing_id: str) -> Drawing | None:
        return self._drawings.get(drawing_id)

    def remove(self, drawing_id: str) -> Drawing | None:
        """Delete a drawing and cancel its timer. Returns None if it was not live."""
        drawing = self._drawings.pop(drawing_id, None)
        if drawing is not None:
            self.cancel_removal(drawing_id)
        return drawing

    def snapshot(self) -> list[dict]:
        """Moderation-console view of every live drawing."""
        return [d.to_console_entry() for d in self._drawings.values()]

    def __contains__(self, drawing_id: object) -> bool:
        return drawing_id in self._drawings

    def __iter__(self) -> Iterator[Drawing]:
        return iter(list(self._drawings.values()))

    def __len__(self) -> int:
        return len(self._drawings)

    @property
    def flagged_count(self) -> int:
        return sum(1 for d in self._drawings.values() if d.flagged)

    # ------------------------------------------------------------------
    # Auto-removal timers
    # ------------------------------------------------------------------

    def schedule_removal(self, drawing_id: str, delay_s: float, on_expire: ExpiryCallback) -> None:
        """Start (or restart) the single auto-removal timer for a drawing."""
        self.cancel_removal(drawing_id)
        self._timers[drawing_id] = asyncio.create_task(
            self._expire_after(drawing_id, delay_s, on_expire),
            name=f"auto-remove-{drawing_id}",
        )

    def cancel_removal(self, drawing_id: str) -> bool:
        task = self._timers.pop(drawing_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def has_timer(self, drawing_id: str) -> bool:
        return drawing_id in self._timers

    def cancel_all(self) -> None:
        for drawing_id in list(self._timers):
            self.cancel_removal(drawing_id)

    async def _expire_after(self, drawing_id: str, delay_s: float, on_expire: ExpiryCallback) -> None:
        await asyncio.sleep(delay_s)
        # Detach before firing so the removal path does not cancel this task
        self._timers.pop(drawing_id, None)
        if drawing_id not in self._drawings:
            return
        try:
            await on_expire(drawing_id)
        except Exception:
            logger.exception("Auto-removal of %s failed", drawing_id)
