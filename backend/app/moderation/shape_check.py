"""Delegated shape checks — correlated request/response with the delegate process.

The shape analysis itself needs canvas pixel access and runs in a separate,
untrusted delegate client. The coordinator sends it ``scan-request`` events
tagged with a correlation id and matches ``scan-response`` events back to the
waiting caller. Every check is bounded: if no answer arrives in time the
caller gets an empty reason list and moves on.

Exactly one completion fires per check. Whichever of response and timeout
comes first pops the entry from the pending table; the loser finds nothing
and does nothing.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field

from app.moderation.broadcast import Connection

logger = logging.getLogger(__name__)

SCAN_REQUEST = "scan-request"


@dataclass
class PendingCheck:
    correlation_id: str
    drawing_id: str
    image_payload: str
    future: asyncio.Future[list[str]] = field(repr=False)
    timeout_handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def request(self) -> dict[str, str]:
        return {"correlationId": self.correlation_id, "imagePayload": self.image_payload}

    def complete(self, reasons: list[str]) -> bool:
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()
            self.timeout_handle = None
        if self.future.done():
            return False
        self.future.set_result(list(reasons))
        return True


class ShapeCheckCoordinator:
    """Tracks the single delegate connection and the outstanding checks."""

    def __init__(self, timeout_s: float = 8.0) -> None:
        self.timeout_s = timeout_s
        self._delegate: Connection | None = None
        self._pending: dict[str, PendingCheck] = {}
        self._counter = itertools.count()

    # ------------------------------------------------------------------
    # Delegate connection
    # ------------------------------------------------------------------

    @property
    def delegate(self) -> Connection | None:
        return self._delegate

    @property
    def online(self) -> bool:
        return self._delegate is not None

    def attach(self, conn: Connection) -> None:
        """Make ``conn`` the delegate. The last one to register wins."""
        if self._delegate is not None and self._delegate is not conn:
            logger.info("Delegate %s replaced by %s", self._delegate.id, conn.id)
        self._delegate = conn

    async def replay_pending(self) -> int:
        """Re-send every outstanding request to the current delegate."""
        if self._delegate is None:
            return 0
        pending = list(self._pending.values())
        if pending:
            logger.info("Replaying %d pending checks to %s", len(pending), self._delegate.id)
        for check in pending:
            await self._send(self._delegate, check)
        return len(pending)

    def detach(self, conn: Connection) -> bool:
        """Forget ``conn`` if it is the active delegate. Pending checks are kept."""
        if self._delegate is None or self._delegate is not conn:
            return False
        self._delegate = None
        return True

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, correlation_id: str) -> bool:
        return correlation_id in self._pending

    def _next_id(self) -> str:
        return f"s_{next(self._counter)}"

    async def check(self, drawing_id: str, image_payload: str) -> list[str]:
        """Ask the delegate for shape-violation reasons, waiting at most ``timeout_s``."""
        loop = asyncio.get_running_loop()
        correlation_id = self._next_id()
        check = PendingCheck(
            correlation_id=correlation_id,
            drawing_id=drawing_id,
            image_payload=image_payload,
            future=loop.create_future(),
        )
        self._pending[correlation_id] = check
        check.timeout_handle = loop.call_later(self.timeout_s, self._expire, correlation_id)

        if self._delegate is not None:
            await self._send(self._delegate, check)
        else:
            logger.debug("No delegate — %s queued until one connects", correlation_id)

        return await check.future

    def resolve(self, correlation_id: str, reasons: list[str] | None) -> bool:
        """Deliver a delegate response. Unknown or already-completed ids are ignored."""
        check = self._pending.pop(correlation_id, None)
        if check is None:
            return False
        reasons = reasons or []
        logger.info(
            "Shape result for %s (%s): %s",
            correlation_id,
            check.drawing_id,
            reasons if reasons else "clean",
        )
        return check.complete(reasons)

    def _expire(self, correlation_id: str) -> None:
        check = self._pending.pop(correlation_id, None)
        if check is None:
            return
        check.timeout_handle = None
        logger.warning(
            "Timeout waiting for %s (%s) after %.1fs",
            correlation_id,
            check.drawing_id,
            self.timeout_s,
        )
        check.complete([])

    def cancel_all(self) -> None:
        """Resolve every outstanding check with no reasons (used on shutdown)."""
        for correlation_id in list(self._pending):
            check = self._pending.pop(correlation_id)
            check.complete([])

    async def _send(self, conn: Connection, check: PendingCheck) -> None:
        try:
            await conn.send(SCAN_REQUEST, check.request())
        except Exception as e:
            # The check stays registered and will time out normally
            logger.warning("Could not send %s to delegate %s: %s", check.correlation_id, conn.id, e)
