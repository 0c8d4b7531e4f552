# backend/modules/kds/schemas/__init__.py

"""
Kitchen Display System schemas.
"""

from .ticket_schemas import (
    Ticket,
    TicketItem,
    SourceItem,
    SourceEvent,
    DisplayEvent,
    ManualOrderCreate,
    DisplayActionRequest,
    FullSyncMessage,
    OrderChangedMessage,
)

__all__ = [
    "Ticket",
    "TicketItem",
    "SourceItem",
    "SourceEvent",
    "DisplayEvent",
    "ManualOrderCreate",
    "DisplayActionRequest",
    "FullSyncMessage",
    "OrderChangedMessage",
]
