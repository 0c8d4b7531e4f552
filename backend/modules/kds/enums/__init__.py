# backend/modules/kds/enums/__init__.py

"""
Kitchen Display System enums.
"""

from .ticket_enums import (
    TicketStatus,
    SourceState,
    DisplayAction,
    ServerMessageType,
    EventOrigin,
)

__all__ = [
    "TicketStatus",
    "SourceState",
    "DisplayAction",
    "ServerMessageType",
    "EventOrigin",
]
