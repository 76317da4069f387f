from __future__ import annotations

import asyncio

import pytest

from chat_realtime.api.v1.routers import ws
from chat_realtime.config import settings
from tests.conftest import FakeConnection


@pytest.fixture
def fast_heartbeat(monkeypatch):
    monkeypatch.setattr(settings, "WS_HEARTBEAT_SECONDS", 0.01)


@pytest.mark.asyncio
async def test_heartbeat_pongs_until_stopped(fast_heartbeat):
    conn = FakeConnection("c1")
    task = asyncio.create_task(ws._heartbeat(conn))
    await asyncio.sleep(0.05)

    await ws._stop_heartbeat(task)

    assert task.done()
    assert task.cancelled()
    sent = len(conn.events("pong"))
    assert sent >= 1
    await asyncio.sleep(0.03)
    assert len(conn.events("pong")) == sent


@pytest.mark.asyncio
async def test_stopping_a_heartbeat_whose_socket_is_gone(fast_heartbeat):
    conn = FakeConnection("c1", alive=False)
    task = asyncio.create_task(ws._heartbeat(conn))
    await asyncio.sleep(0.05)
    assert task.done()

    await ws._stop_heartbeat(task)

    assert not task.cancelled()
    assert conn.sent == []
