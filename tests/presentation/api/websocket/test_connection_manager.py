"""Tests for the per-user notification socket registry"""

import json
from unittest.mock import AsyncMock

import pytest

from tenancy.presentation.api.websocket.manager import ConnectionManager


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


async def test_connect_accepts_and_groups_sockets_by_user(manager):
    first, second = AsyncMock(), AsyncMock()

    await manager.connect(first, "user-1")
    await manager.connect(second, "user-1")

    first.accept.assert_awaited_once()
    assert manager.sockets_of("user-1") == {first, second}
    assert len(manager) == 2


async def test_send_to_user_reaches_every_tab(manager):
    first, second, other = AsyncMock(), AsyncMock(), AsyncMock()
    await manager.connect(first, "user-1")
    await manager.connect(second, "user-1")
    await manager.connect(other, "user-2")

    sent = await manager.send_to_user("user-1", {"type": "notification", "message": "done"})

    assert sent == 2
    assert json.loads(first.send_text.await_args[0][0]) == {"type": "notification", "message": "done"}
    other.send_text.assert_not_awaited()


async def test_send_to_unknown_user_reaches_nobody(manager):
    assert await manager.send_to_user("nobody", {"type": "notification"}) == 0


async def test_broken_sockets_are_dropped(manager):
    healthy, broken = AsyncMock(), AsyncMock()
    broken.send_text.side_effect = RuntimeError("closed")
    await manager.connect(healthy, "user-1")
    await manager.connect(broken, "user-1")

    sent = await manager.send_to_user("user-1", {"type": "notification"})

    assert sent == 1
    assert manager.sockets_of("user-1") == {healthy}


async def test_send_personal_reports_failure(manager):
    broken = AsyncMock()
    broken.send_text.side_effect = RuntimeError("closed")

    assert await manager.send_personal(broken, {"type": "connected"}) is False


async def test_disconnect_twice_is_harmless(manager):
    ws = AsyncMock()
    await manager.connect(ws, "user-1")

    await manager.disconnect(ws, "user-1")
    await manager.disconnect(ws, "user-1")

    assert manager.sockets_of("user-1") == frozenset()
    assert len(manager) == 0


async def test_close_all(manager):
    ws = AsyncMock()
    await manager.connect(ws, "user-1")

    await manager.close_all()

    ws.close.assert_awaited_once()
    assert len(manager) == 0
