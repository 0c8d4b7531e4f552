# backend/modules/kds/services/kds_runtime.py

"""
Wiring of the ticket engine components for one running application.
"""

from typing import Optional
import logging

from core.config import Settings, settings as default_settings
from modules.pos.adapters.adapter_factory import AdapterFactory
from modules.pos.adapters.base_adapter import BasePOSAdapter
from .kds_websocket_manager import KDSWebSocketManager
from .ticket_dispatcher import TicketEventDispatcher
from .ticket_engine import TicketEngine
from .ticket_persistence import BaseTicketPersistence, create_persistence
from .ticket_store import TicketStore

logger = logging.getLogger(__name__)


class KDSRuntime:
    """Holds the store, engine, hub and dispatcher shared by all routes"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        persistence: Optional[BaseTicketPersistence] = None,
        order_source: Optional[BasePOSAdapter] = None,
    ):
        self.config = config or default_settings
        self.store = TicketStore()
        self.persistence = persistence or create_persistence(self.config)
        self.hub = KDSWebSocketManager(
            send_timeout=self.config.websocket_send_timeout_seconds
        )
        self.engine = TicketEngine(self.store, self.persistence, self.hub)
        self.order_source = order_source or AdapterFactory.from_settings(self.config)
        self.dispatcher = TicketEventDispatcher(
            self.engine,
            order_source=self.order_source,
            maxsize=self.config.event_queue_size,
            fetch_timeout=self.config.order_fetch_timeout_seconds,
        )

    async def start(self):
        """Restore the last snapshot and start consuming events"""
        self.engine.restore()
        self.dispatcher.start()
        if not self.order_source.can_fetch_orders:
            logger.warning(
                "No Square access token configured, item-less webhooks will use cached items"
            )

    async def shutdown(self):
        await self.dispatcher.stop()
        await self.hub.close_all_connections()
        self.persistence.close()
