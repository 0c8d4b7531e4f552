# backend/modules/kds/tests/test_kds_websocket_manager.py

"""
Tests for the display session hub
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock

from modules.kds.services.kds_websocket_manager import KDSWebSocketManager


def make_socket(side_effect=None):
    websocket = AsyncMock()
    websocket.send_text = AsyncMock(side_effect=side_effect)
    return websocket


def sent_messages(websocket):
    return [json.loads(call.args[0]) for call in websocket.send_text.await_args_list]


@pytest.fixture
def manager(make_ticket):
    return KDSWebSocketManager(snapshot_provider=lambda: [make_ticket()], send_timeout=0.05)


class TestKDSWebSocketManager:

    @pytest.mark.asyncio
    async def test_connect_sends_full_sync(self, manager):
        websocket = make_socket()

        await manager.connect(websocket)

        websocket.accept.assert_awaited_once()
        assert manager.get_connection_count() == 1
        message = sent_messages(websocket)[0]
        assert message["type"] == "full-sync"
        assert message["orders"][0]["orderId"] == "sq-1001"
        assert message["orders"][0]["itemCount"] == 3
        assert "timestamp" in message

    @pytest.mark.asyncio
    async def test_full_sync_without_provider_is_empty(self):
        manager = KDSWebSocketManager(send_timeout=0.05)

        assert manager.build_full_sync()["orders"] == []

    @pytest.mark.asyncio
    async def test_broadcast_order_changed_reaches_every_session(self, manager, make_ticket):
        sockets = [make_socket(), make_socket()]
        for websocket in sockets:
            await manager.connect(websocket)

        delivered = await manager.broadcast_order_changed(make_ticket(status="ready"))

        assert delivered == 2
        for websocket in sockets:
            message = sent_messages(websocket)[-1]
            assert message["type"] == "order-changed"
            assert message["order"]["status"] == "ready"

    @pytest.mark.asyncio
    async def test_failing_session_is_removed_without_affecting_others(
        self, manager, make_ticket
    ):
        healthy = make_socket()
        broken = make_socket()
        await manager.connect(healthy)
        await manager.connect(broken)
        broken.send_text.side_effect = RuntimeError("connection reset")

        delivered = await manager.broadcast_order_changed(make_ticket())

        assert delivered == 1
        assert broken not in manager.active_connections
        assert healthy in manager.active_connections
        assert sent_messages(healthy)[-1]["type"] == "order-changed"

    @pytest.mark.asyncio
    async def test_slow_session_times_out(self, manager, make_ticket):
        """A stalled display is dropped instead of holding up the broadcast"""

        async def stall(_):
            await asyncio.sleep(5)

        healthy = make_socket()
        slow = make_socket()
        await manager.connect(healthy)
        await manager.connect(slow)
        slow.send_text.side_effect = stall

        delivered = await asyncio.wait_for(
            manager.broadcast_order_changed(make_ticket()), timeout=1
        )

        assert delivered == 1
        assert manager.get_connection_count() == 1

    @pytest.mark.asyncio
    async def test_broadcast_without_sessions(self, manager):
        assert await manager.broadcast_full_sync() == 0

    @pytest.mark.asyncio
    async def test_heartbeat(self, manager):
        websocket = make_socket()
        await manager.connect(websocket)

        await manager.send_heartbeat()

        assert sent_messages(websocket)[-1]["type"] == "heartbeat"

    @pytest.mark.asyncio
    async def test_disconnect_and_close_all(self, manager):
        first, second = make_socket(), make_socket()
        await manager.connect(first)
        await manager.connect(second)

        manager.disconnect(first)
        manager.disconnect(first)
        await manager.close_all_connections()

        assert manager.get_connection_count() == 0
        second.close.assert_awaited_once()
        first.close.assert_not_awaited()
