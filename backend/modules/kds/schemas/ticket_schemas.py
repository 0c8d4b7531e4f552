# backend/modules/kds/schemas/ticket_schemas.py

"""
Pydantic schemas for kitchen tickets, inbound events and display messages.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..enums.ticket_enums import (
    DisplayAction,
    EventOrigin,
    ServerMessageType,
    SourceState,
    TicketStatus,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_quantity(value: Any) -> int:
    """
    Coerce a raw quantity into a non-negative count.

    Missing, non-numeric and negative values count as one item, as does a
    fraction such as a weighed portion. An explicit numeric zero stays zero.
    """
    if value is None or isinstance(value, bool):
        return 1
    try:
        number = float(str(value).strip())
        quantity = int(number)
    except (TypeError, ValueError, OverflowError):
        return 1
    if number == 0:
        return 0
    # fractional weights still count as one line
    return max(1, quantity)


class CamelModel(BaseModel):
    """Base schema using camelCase aliases on the wire"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ========== Tickets ==========


class TicketItem(CamelModel):
    """One line of a kitchen ticket"""

    name: str
    quantity: int = 1
    modifiers: List[str] = Field(default_factory=list)
    completed: bool = False
    key: Optional[str] = None
    note: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        return normalize_quantity(v)


class Ticket(CamelModel):
    """Authoritative state of one order in the kitchen"""

    order_id: str = Field(..., min_length=1)
    order_number: str
    status: TicketStatus = TicketStatus.NEW
    items: List[TicketItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None
    is_prioritized: bool = False
    source_state: Optional[str] = None
    service_type: Optional[str] = None
    note: Optional[str] = None

    @computed_field(alias="itemCount")
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


# ========== Inbound events ==========


class SourceItem(CamelModel):
    """Line item as reported by the order source"""

    name: str = ""
    quantity: int = 1
    modifiers: List[str] = Field(default_factory=list)
    key: Optional[str] = None
    note: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        return normalize_quantity(v)

    @field_validator("modifiers", mode="before")
    @classmethod
    def coerce_modifiers(cls, v):
        if v is None:
            return []
        return [str(m) for m in v if m is not None]


class SourceEvent(CamelModel):
    """Normalized update from the order source (or a manual test order)"""

    origin: EventOrigin = EventOrigin.SOURCE
    order_id: str = Field(..., min_length=1)
    source_state: Optional[str] = None
    order_number_hint: Optional[str] = None
    items: Optional[List[SourceItem]] = None
    service_type: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    event_type: Optional[str] = None

    @property
    def state(self) -> SourceState:
        return SourceState.normalize(self.source_state)


class DisplayEvent(CamelModel):
    """Kitchen action sent by a display session"""

    origin: EventOrigin = EventOrigin.DISPLAY
    action: DisplayAction = Field(..., alias="type")
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    item_index: Optional[int] = Field(None, ge=0)
    completed: Optional[bool] = None
    is_prioritized: Optional[bool] = None

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v):
        if isinstance(v, DisplayAction):
            return v
        action = DisplayAction.parse(v)
        if action is None:
            raise ValueError(f"Unknown display action: {v}")
        return action

    @field_validator("order_number", mode="before")
    @classmethod
    def stringify_order_number(cls, v):
        return None if v is None else str(v)

    @model_validator(mode="after")
    def require_reference(self):
        if self.action in (DisplayAction.SYNC_REQUEST, DisplayAction.PING):
            return self
        if not self.order_id and not self.order_number:
            raise ValueError("orderId or orderNumber is required")
        if self.action == DisplayAction.ITEM_TOGGLE and self.item_index is None:
            raise ValueError("itemIndex is required for item-toggle")
        return self


# ========== REST requests ==========


class ManualOrderCreate(CamelModel):
    """Manual test order created from the kitchen screen or tooling"""

    order_number: Optional[str] = None
    items: List[SourceItem] = Field(default_factory=list)
    service_type: Optional[str] = None
    note: Optional[str] = None


class DisplayActionRequest(CamelModel):
    """Display action submitted over REST instead of the websocket"""

    action: DisplayAction
    item_index: Optional[int] = Field(None, ge=0)
    completed: Optional[bool] = None
    is_prioritized: Optional[bool] = None

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v):
        if isinstance(v, DisplayAction):
            return v
        action = DisplayAction.parse(v)
        if action is None:
            raise ValueError(f"Unknown display action: {v}")
        return action


# ========== Outbound messages ==========


class FullSyncMessage(CamelModel):
    """Complete snapshot sent on connect and on sync request"""

    type: ServerMessageType = ServerMessageType.FULL_SYNC
    orders: List[Ticket]
    timestamp: datetime = Field(default_factory=utc_now)


class OrderChangedMessage(CamelModel):
    """Delta carrying the full next state of one ticket"""

    type: ServerMessageType = ServerMessageType.ORDER_CHANGED
    order: Ticket
    timestamp: datetime = Field(default_factory=utc_now)
