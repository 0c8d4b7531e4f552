# backend/modules/kds/services/__init__.py

"""
Kitchen Display System services.
"""

from .ticket_store import TicketStore
from .ticket_persistence import (
    BaseTicketPersistence,
    JsonFileTicketPersistence,
    SqlTicketPersistence,
    create_persistence,
)
from .ticket_reconciler import Decision, reconcile
from .ticket_engine import ChangeResult, TicketEngine
from .ticket_dispatcher import TicketEventDispatcher
from .kds_websocket_manager import KDSWebSocketManager
from .kds_runtime import KDSRuntime

__all__ = [
    "TicketStore",
    "BaseTicketPersistence",
    "JsonFileTicketPersistence",
    "SqlTicketPersistence",
    "create_persistence",
    "Decision",
    "reconcile",
    "ChangeResult",
    "TicketEngine",
    "TicketEventDispatcher",
    "KDSWebSocketManager",
    "KDSRuntime",
]
