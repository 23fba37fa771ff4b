"""Tests for delegated shape checks: correlation, timeout fallback, replay."""

import asyncio

import pytest

from app.moderation.shape_check import ShapeCheckCoordinator
from tests.conftest import BrokenConnection, RecordingConnection


async def _start_check(coord: ShapeCheckCoordinator, drawing_id: str = "d_1") -> asyncio.Task:
    task = asyncio.create_task(coord.check(drawing_id, "img"))
    await asyncio.sleep(0)
    return task


@pytest.mark.asyncio
async def test_response_resolves_check():
    coord = ShapeCheckCoordinator(timeout_s=1.0)
    delegate = RecordingConnection("scanner")
    coord.attach(delegate)

    task = await _start_check(coord)
    assert delegate.events == [("scan-request", {"correlationId": "s_0", "imagePayload": "img"})]

    assert coord.resolve("s_0", ["shape: suspicious"]) is True
    assert await task == ["shape: suspicious"]
    assert coord.pending_count == 0


@pytest.mark.asyncio
async def test_correlation_ids_are_monotonic():
    coord = ShapeCheckCoordinator(timeout_s=1.0)
    delegate = RecordingConnection("scanner")
    coord.attach(delegate)

    t1 = await _start_check(coord, "d_1")
    t2 = await _start_check(coord, "d_2")
    ids = [data["correlationId"] for _, data in delegate.events]
    assert ids == ["s_0", "s_1"]

    coord.resolve("s_1", [])
    coord.resolve("s_0", ["x"])
    assert await t1 == ["x"]
    assert await t2 == []


@pytest.mark.asyncio
async def test_timeout_falls_back_to_empty():
    coord = ShapeCheckCoordinator(timeout_s=0.05)
    coord.attach(RecordingConnection("scanner"))

    reasons = await coord.check("d_1", "img")

    assert reasons == []
    assert coord.pending_count == 0


@pytest.mark.asyncio
async def test_late_and_duplicate_responses_are_ignored():
    coord = ShapeCheckCoordinator(timeout_s=0.05)
    coord.attach(RecordingConnection("scanner"))

    assert await coord.check("d_1", "img") == []
    assert coord.resolve("s_0", ["too late"]) is False
    assert coord.resolve("s_0", ["again"]) is False
    assert coord.resolve("nope", ["unknown"]) is False


@pytest.mark.asyncio
async def test_response_cancels_timeout():
    coord = ShapeCheckCoordinator(timeout_s=0.05)
    coord.attach(RecordingConnection("scanner"))

    task = await _start_check(coord)
    coord.resolve("s_0", ["x"])
    await asyncio.sleep(0.1)  # past the timeout

    assert await task == ["x"]
    assert coord.pending_count == 0


@pytest.mark.asyncio
async def test_queued_check_replayed_on_attach():
    coord = ShapeCheckCoordinator(timeout_s=1.0)
    task = await _start_check(coord)
    assert coord.is_pending("s_0")

    delegate = RecordingConnection("scanner")
    coord.attach(delegate)
    assert await coord.replay_pending() == 1

    assert delegate.events == [("scan-request", {"correlationId": "s_0", "imagePayload": "img"})]
    coord.resolve("s_0", [])
    assert await task == []


@pytest.mark.asyncio
async def test_last_registered_delegate_wins():
    coord = ShapeCheckCoordinator(timeout_s=1.0)
    old = RecordingConnection("old")
    new = RecordingConnection("new")
    coord.attach(old)
    coord.attach(new)

    assert coord.delegate is new
    assert coord.detach(old) is False
    assert coord.online is True
    assert coord.detach(new) is True
    assert coord.online is False


@pytest.mark.asyncio
async def test_detach_keeps_pending_checks():
    coord = ShapeCheckCoordinator(timeout_s=0.05)
    delegate = RecordingConnection("scanner")
    coord.attach(delegate)

    task = await _start_check(coord)
    coord.detach(delegate)
    assert coord.is_pending("s_0")

    assert await task == []
    assert coord.pending_count == 0


@pytest.mark.asyncio
async def test_send_failure_times_out_normally():
    coord = ShapeCheckCoordinator(timeout_s=0.05)
    coord.attach(BrokenConnection("scanner"))

    assert await coord.check("d_1", "img") == []


@pytest.mark.asyncio
async def test_cancel_all_releases_waiters():
    coord = ShapeCheckCoordinator(timeout_s=5.0)
    task = await _start_check(coord)
    coord.cancel_all()
    assert await task == []
    assert coord.pending_count == 0
