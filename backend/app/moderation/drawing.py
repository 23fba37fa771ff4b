"""Drawing — one submitted image tracked through its display/moderation lifecycle."""

from __future__ import annotations

import itertools
import secrets
import time
from dataclasses import dataclass
from typing import Any

_id_counter = itertools.count()


def new_drawing_id() -> str:
    """Process-unique drawing id: ``d_<epoch ms>_<n><random>``.

    The counter keeps ids distinct even when two drawings arrive within the
    same millisecond and the random suffixes happen to match.
    """
    return f"d_{int(time.time() * 1000)}_{next(_id_counter)}{secrets.token_hex(3)}"


@dataclass
class Drawing:
    id: str
    image_payload: str
    display_hint: Any = None
    flagged: bool = False
    reason: str | None = None

    def flag(self, reasons: list[str]) -> None:
        if not reasons:
            raise ValueError("Cannot flag a drawing without reasons")
        self.flagged = True
        self.reason = ", ".join(reasons)

    def clear_flag(self) -> None:
        self.flagged = False
        self.reason = None

    def to_display_event(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "imagePayload": self.image_payload,
            "displayHint": self.display_hint,
        }

    def to_console_entry(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thumbnail": self.image_payload,
            "flagged": self.flagged,
            "reason": self.reason,
        }
