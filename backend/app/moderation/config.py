"""Moderation configuration — timing knobs and removal reason texts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.config import Settings


@dataclass
class ModerationConfig:
    """Controls how long flagged drawings live and how long the delegate gets."""

    # Flagged drawings are removed this long after the flag
    auto_remove_ms: int = 5000
    # Bounded wait for a delegated shape check
    shape_check_timeout_ms: int = 8000

    auto_remove_reason: str = "auto-removed after flag"
    manual_remove_reason: str = "admin manual removal"

    @property
    def auto_remove_s(self) -> float:
        return self.auto_remove_ms / 1000.0

    @property
    def shape_check_timeout_s(self) -> float:
        return self.shape_check_timeout_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: Settings) -> ModerationConfig:
        return cls(
            auto_remove_ms=settings.auto_remove_ms,
            shape_check_timeout_ms=settings.shape_check_timeout_ms,
        )
