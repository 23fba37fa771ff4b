"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import base64
import io
from collections.abc import Callable
from typing import Any

import pytest
from PIL import Image, ImageDraw

from app.moderation.classifier import ContentClassifier
from app.moderation.config import ModerationConfig
from app.moderation.pipeline import ModerationPipeline

# Shrunk timings: auto-remove 50ms, delegate timeout 100ms
FAST_CONFIG = ModerationConfig(auto_remove_ms=50, shape_check_timeout_ms=100)

SAMPLE_PAYLOAD = "data:image/png;base64," + base64.b64encode(b"not really a png").decode()


def png_payload(blank: bool = False, size: tuple[int, int] = (64, 32)) -> str:
    """A transparent canvas export, optionally with a black stroke on it."""
    image = Image.new("RGBA", size, (0, 0, 0, 0))
    if not blank:
        ImageDraw.Draw(image).line([(4, 4), (size[0] - 4, size[1] - 4)], fill=(0, 0, 0, 255), width=3)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


class EventLog:
    """Global ordering of everything sent to any recording connection."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, str, Any]] = []

    def index(self, conn_id: str, event: str) -> int:
        for i, (cid, name, _) in enumerate(self.entries):
            if cid == conn_id and name == event:
                return i
        raise ValueError(f"{event} never sent to {conn_id}")


class RecordingConnection:
    def __init__(self, id: str = "conn", log: EventLog | None = None) -> None:
        self.id = id
        self.log = log
        self.events: list[tuple[str, Any]] = []

    async def send(self, event: str, data: Any = None) -> None:
        self.events.append((event, data))
        if self.log is not None:
            self.log.entries.append((self.id, event, data))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, event: str) -> list[Any]:
        return [data for name, data in self.events if name == event]


class SlowConnection(RecordingConnection):
    """Yields to the loop after every send, like a real socket write."""

    async def send(self, event: str, data: Any = None) -> None:
        await super().send(event, data)
        await asyncio.sleep(0.01)


class BrokenConnection(RecordingConnection):
    async def send(self, event: str, data: Any = None) -> None:
        raise ConnectionError("socket closed")


class FakeDelegate(RecordingConnection):
    """Answers scan-requests on the next loop tick via ``respond`` (None = stay silent)."""

    def __init__(
        self,
        pipeline: ModerationPipeline,
        respond: Callable[[dict], list[str] | None] | None = None,
        id: str = "delegate",
        log: EventLog | None = None,
    ) -> None:
        super().__init__(id=id, log=log)
        self.pipeline = pipeline
        self.respond = respond

    async def send(self, event: str, data: Any = None) -> None:
        await super().send(event, data)
        if event == "scan-request" and self.respond is not None:
            reasons = self.respond(data)
            if reasons is not None:
                asyncio.get_running_loop().call_soon(
                    self.pipeline.handle_scan_response, data["correlationId"], reasons
                )


class FakeRecognizer:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    def recognize(self, image_bytes: bytes) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


def make_pipeline(
    text: str = "",
    error: Exception | None = None,
    config: ModerationConfig = FAST_CONFIG,
) -> ModerationPipeline:
    recognizer = FakeRecognizer(text=text, error=error)
    return ModerationPipeline(classifier=ContentClassifier(recognizer), config=config)


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll until `predicate` holds; the OCR step runs in a worker thread."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def pipeline() -> ModerationPipeline:
    return make_pipeline()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()
