# backend/modules/kds/enums/ticket_enums.py

"""
Enums for kitchen tickets, inbound events and display messages.
"""

from enum import Enum
from typing import Optional


class TicketStatus(str, Enum):
    """Kitchen ticket status"""
    NEW = "new"
    IN_PROGRESS = "in-progress"
    READY = "ready"
    DONE = "done"
    CANCELLED = "cancelled"

    @property
    def is_locked(self) -> bool:
        """Statuses a plain source update may not move"""
        return self in LOCKED_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


LOCKED_STATUSES = frozenset(
    {TicketStatus.READY, TicketStatus.CANCELLED, TicketStatus.DONE}
)
TERMINAL_STATUSES = frozenset({TicketStatus.CANCELLED, TicketStatus.DONE})
ACTIVE_STATUSES = frozenset({TicketStatus.NEW, TicketStatus.IN_PROGRESS})


class SourceState(str, Enum):
    """Normalized order state reported by the order source"""
    OPEN = "open"
    CANCELED = "canceled"
    CLOSED = "closed"
    UNKNOWN = "unknown"

    @property
    def is_cancellation(self) -> bool:
        return self in (SourceState.CANCELED, SourceState.CLOSED)

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "SourceState":
        """Collapse the spellings seen from POS systems onto one value"""
        if raw is None:
            return cls.UNKNOWN
        return _SOURCE_STATE_ALIASES.get(str(raw).strip().lower(), cls.UNKNOWN)


_SOURCE_STATE_ALIASES = {
    "open": SourceState.OPEN,
    "draft": SourceState.OPEN,
    "proposed": SourceState.OPEN,
    "reserved": SourceState.OPEN,
    "prepared": SourceState.OPEN,
    "canceled": SourceState.CANCELED,
    "cancelled": SourceState.CANCELED,
    "voided": SourceState.CANCELED,
    "closed": SourceState.CLOSED,
    "completed": SourceState.CLOSED,
}


class DisplayAction(str, Enum):
    """Actions a kitchen display may send"""
    MARK_READY = "mark-ready"
    REACTIVATE = "reactivate"
    CANCEL = "cancel"
    COMPLETE = "complete"
    ITEM_TOGGLE = "item-toggle"
    PRIORITY_TOGGLE = "priority-toggle"
    SYNC_REQUEST = "sync-request"
    PING = "ping"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["DisplayAction"]:
        if not raw:
            return None
        key = str(raw).strip()
        if key in _LEGACY_ACTION_ALIASES:
            return _LEGACY_ACTION_ALIASES[key]
        try:
            return cls(key.lower().replace("_", "-"))
        except ValueError:
            return None


# Message names used by the first generation of kitchen screens
_LEGACY_ACTION_ALIASES = {
    "ORDER_READY": DisplayAction.MARK_READY,
    "SYNC_REQUEST": DisplayAction.SYNC_REQUEST,
}


class ServerMessageType(str, Enum):
    """Messages pushed to display sessions"""
    FULL_SYNC = "full-sync"
    ORDER_CHANGED = "order-changed"
    HEARTBEAT = "heartbeat"
    PONG = "pong"
    ERROR = "error"


class EventOrigin(str, Enum):
    """Authority that emitted an event"""
    SOURCE = "source"
    DISPLAY = "display"
