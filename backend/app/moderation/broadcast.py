"""Fan-out layer — audience groups and best-effort multicast."""

from __future__ import annotations

import enum
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """One persistent client connection (a WebSocket in production)."""

    id: str

    async def send(self, event: str, data: Any = None) -> None: ...


class Role(str, enum.Enum):
    DISPLAY = "display"
    MODERATION_CONSOLE = "moderation-console"
    DELEGATE = "delegate"

    @classmethod
    def parse(cls, value: str) -> Role | None:
        """Map a declared role (or one of the legacy client names) to a Role."""
        value = (value or "").strip().lower()
        try:
            return cls(value)
        except ValueError:
            return _ROLE_ALIASES.get(value)


_ROLE_ALIASES = {
    "projector": Role.DISPLAY,
    "admin": Role.MODERATION_CONSOLE,
    "scanner": Role.DELEGATE,
}


class Group(str, enum.Enum):
    DISPLAYS = "displays"
    CONSOLES = "consoles"


class Broadcaster:
    """Group membership map plus publish/send primitives.

    Delivery is best-effort: a failing member is logged and skipped, the rest
    of the group still receives the event.
    """

    def __init__(self) -> None:
        self._groups: dict[Group, dict[str, Connection]] = {g: {} for g in Group}

    def join(self, group: Group, conn: Connection) -> None:
        self._groups[group][conn.id] = conn
        logger.debug("%s joined %s", conn.id, group.value)

    def leave_all(self, conn: Connection) -> None:
        for members in self._groups.values():
            members.pop(conn.id, None)

    def members(self, group: Group) -> list[Connection]:
        return list(self._groups[group].values())

    def is_member(self, group: Group, conn: Connection) -> bool:
        return conn.id in self._groups[group]

    async def publish(self, group: Group, event: str, data: Any = None) -> int:
        """Send an event to every member of a group. Returns the delivered count."""
        delivered = 0
        for conn in self.members(group):
            if await self.send(conn, event, data):
                delivered += 1
        return delivered

    async def send(self, conn: Connection, event: str, data: Any = None) -> bool:
        try:
            await conn.send(event, data)
            return True
        except Exception as e:
            logger.warning("Send %s to %s failed: %s", event, conn.id, e)
            return False
