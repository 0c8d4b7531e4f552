# backend/modules/kds/services/kds_websocket_manager.py

"""
WebSocket manager fanning ticket state out to kitchen displays.
"""

from fastapi import WebSocket
from typing import Callable, List, Optional, Set
import json
import asyncio
import logging
from datetime import datetime, timezone

from core.config import settings
from ..enums.ticket_enums import ServerMessageType
from ..schemas.ticket_schemas import FullSyncMessage, OrderChangedMessage, Ticket

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], List[Ticket]]


class KDSWebSocketManager:
    """
    Manages display sessions and delivers ticket updates to them.

    Every session gets a full snapshot when it connects or asks for one, and
    a delta for every observable change. Sends run concurrently with a
    timeout, so one slow or dead display never holds up the others.
    """

    def __init__(
        self,
        snapshot_provider: Optional[SnapshotProvider] = None,
        send_timeout: Optional[float] = None,
    ):
        self.active_connections: Set[WebSocket] = set()
        self.snapshot_provider = snapshot_provider
        self.send_timeout = (
            settings.websocket_send_timeout_seconds
            if send_timeout is None
            else send_timeout
        )
        self.lock = asyncio.Lock()

    def bind_snapshot(self, snapshot_provider: SnapshotProvider):
        """Attach the callable returning the current list of tickets"""
        self.snapshot_provider = snapshot_provider

    async def connect(self, websocket: WebSocket):
        """Accept a display session and send it the current state"""
        await websocket.accept()

        async with self.lock:
            self.active_connections.add(websocket)

        logger.info(
            f"Display connected. Total connections: {len(self.active_connections)}"
        )
        await self.send_full_sync(websocket)

    def disconnect(self, websocket: WebSocket):
        """Forget a display session"""
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(
                f"Display disconnected. Total connections: {len(self.active_connections)}"
            )

    def build_full_sync(self) -> dict:
        tickets = self.snapshot_provider() if self.snapshot_provider else []
        return FullSyncMessage(orders=tickets).to_wire()

    async def send_full_sync(self, websocket: WebSocket) -> bool:
        """Send the complete ticket list to one session"""
        return await self.send_personal_message(self.build_full_sync(), websocket)

    async def send_personal_message(self, message: dict, websocket: WebSocket) -> bool:
        """Send a message to a specific session, dropping it on failure"""
        message_text = json.dumps(message, default=str)
        try:
            await asyncio.wait_for(
                websocket.send_text(message_text), timeout=self.send_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.warning("Timed out sending to display, dropping session")
        except Exception as e:
            logger.error(f"Error sending personal message: {str(e)}")
        self.disconnect(websocket)
        return False

    async def broadcast(self, message: dict) -> int:
        """Send a message to every session; returns how many received it"""
        connections = list(self.active_connections)
        if not connections:
            return 0

        results = await asyncio.gather(
            *(self.send_personal_message(message, ws) for ws in connections),
            return_exceptions=True,
        )
        delivered = sum(1 for result in results if result is True)
        if delivered < len(connections):
            logger.warning(
                f"Broadcast {message.get('type')} reached {delivered}/{len(connections)} displays"
            )
        return delivered

    async def broadcast_order_changed(self, ticket: Ticket) -> int:
        """Publish the new state of one ticket"""
        return await self.broadcast(OrderChangedMessage(order=ticket).to_wire())

    async def broadcast_full_sync(self) -> int:
        """Push a fresh snapshot to every session"""
        return await self.broadcast(self.build_full_sync())

    async def send_heartbeat(self):
        """Send heartbeat to all sessions"""
        message = {
            "type": ServerMessageType.HEARTBEAT.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await self.broadcast(message)

    def get_connection_count(self) -> int:
        """Get number of active sessions"""
        return len(self.active_connections)

    async def close_all_connections(self):
        """Close all WebSocket connections"""
        tasks = [websocket.close() for websocket in list(self.active_connections)]

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.active_connections.clear()
        logger.info("All WebSocket connections closed")
