# backend/modules/kds/services/ticket_reconciler.py

"""
Status reconciliation rules for kitchen tickets.

Two authorities update the same ticket: the order source (POS) and the
kitchen displays. The functions here are pure: given the current ticket
(or ``None``) and one event they compute the next status, items and
metadata. Nothing here touches the store, the disk or the network.

Status lock: once the kitchen has moved a ticket to ``ready``, ``done`` or
``cancelled``, plain source updates no longer change it. Only a source
cancellation gets through, and only a display ``reactivate`` reopens it.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union
import re

from ..enums.ticket_enums import ACTIVE_STATUSES, DisplayAction, TicketStatus
from ..schemas.ticket_schemas import (
    DisplayEvent,
    SourceEvent,
    SourceItem,
    Ticket,
    TicketItem,
    utc_now,
)

TicketEvent = Union[SourceEvent, DisplayEvent]

FALLBACK_NUMBER_LENGTH = 4
_DIGITS = re.compile(r"\d+")


@dataclass(frozen=True)
class TicketMeta:
    """Descriptive fields carried alongside status and items"""

    order_number: str
    created_at: datetime
    is_prioritized: bool = False
    source_state: Optional[str] = None
    service_type: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    """Next state of a ticket as computed by the reconciler"""

    order_id: str
    status: TicketStatus
    items: List[TicketItem]
    meta: TicketMeta
    locked: bool = False

    def to_ticket(self, updated_at: Optional[datetime] = None) -> Ticket:
        return Ticket(
            order_id=self.order_id,
            order_number=self.meta.order_number,
            status=self.status,
            items=[item.model_copy() for item in self.items],
            created_at=self.meta.created_at,
            updated_at=updated_at,
            is_prioritized=self.meta.is_prioritized,
            source_state=self.meta.source_state,
            service_type=self.meta.service_type,
            note=self.meta.note,
        )


# ========== Normalization helpers ==========


def clean_order_number(raw: Optional[str]) -> Optional[str]:
    """Reduce a ticket label like ``"Order #155"`` to ``"155"``"""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    match = _DIGITS.search(text)
    return match.group(0) if match else text


def fallback_order_number(order_id: str) -> str:
    return order_id[-FALLBACK_NUMBER_LENGTH:]


def derive_order_number(
    hint: Optional[str], existing: Optional[Ticket], order_id: str
) -> str:
    """
    Pick the display number for a ticket.

    A hint from the source always wins. Without one the known number is
    kept, and only a ticket with no number at all falls back to the tail of
    its order id.
    """
    cleaned = clean_order_number(hint)
    if cleaned:
        return cleaned
    if existing is not None and existing.order_number:
        return existing.order_number
    return fallback_order_number(order_id)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_items(source_items: Sequence[SourceItem]) -> List[TicketItem]:
    return [
        TicketItem(
            name=item.name,
            quantity=item.quantity,
            modifiers=list(item.modifiers),
            key=item.key,
            note=item.note,
        )
        for item in source_items
    ]


def merge_items(
    previous: Sequence[TicketItem], incoming: Sequence[SourceItem]
) -> List[TicketItem]:
    """
    Replace items with a fresh source list, carrying ``completed`` over.

    A line keeps its flag when a previous line has the same source key, or,
    when either side has no key, when the line at the same position has the
    same name. Everything else starts incomplete.
    """
    by_key = {item.key: item for item in previous if item.key}
    merged = build_items(incoming)
    for index, item in enumerate(merged):
        if item.key and item.key in by_key:
            item.completed = by_key[item.key].completed
        elif index < len(previous):
            old = previous[index]
            if (not item.key or not old.key) and old.name == item.name:
                item.completed = old.completed
    return merged


def _copy_items(items: Sequence[TicketItem], completed: Optional[bool] = None):
    copies = [item.model_copy() for item in items]
    if completed is not None:
        for item in copies:
            item.completed = completed
    return copies


def _meta_of(ticket: Ticket) -> TicketMeta:
    return TicketMeta(
        order_number=ticket.order_number,
        created_at=ticket.created_at,
        is_prioritized=ticket.is_prioritized,
        source_state=ticket.source_state,
        service_type=ticket.service_type,
        note=ticket.note,
    )


def _unchanged(ticket: Ticket, locked: bool = False) -> Decision:
    return Decision(
        order_id=ticket.order_id,
        status=ticket.status,
        items=_copy_items(ticket.items),
        meta=_meta_of(ticket),
        locked=locked,
    )


# ========== Source events ==========


def reconcile_source(
    existing: Optional[Ticket], event: SourceEvent, now: Optional[datetime] = None
) -> Decision:
    """Apply an order-source update (also used for manual test orders)"""
    if existing is None:
        meta = TicketMeta(
            order_number=derive_order_number(
                event.order_number_hint, None, event.order_id
            ),
            created_at=as_utc(event.created_at) or as_utc(now) or utc_now(),
            source_state=event.source_state,
            service_type=event.service_type,
            note=event.note,
        )
        return Decision(
            order_id=event.order_id,
            status=TicketStatus.NEW,
            items=build_items(event.items or []),
            meta=meta,
        )

    current = _meta_of(existing)
    cancellation = event.state.is_cancellation

    if existing.status.is_locked and not cancellation:
        # Kitchen already finished with this ticket, only note what the source said
        return replace(
            _unchanged(existing, locked=True),
            meta=replace(current, source_state=event.source_state),
        )

    if existing.status in ACTIVE_STATUSES:
        if event.items is not None:
            items = merge_items(existing.items, event.items)
        else:
            items = _copy_items(existing.items)
        meta = replace(
            current,
            order_number=derive_order_number(
                event.order_number_hint, existing, existing.order_id
            ),
            source_state=event.source_state,
            service_type=(
                event.service_type
                if event.service_type is not None
                else current.service_type
            ),
            note=event.note if event.note is not None else current.note,
        )
    else:
        items = _copy_items(existing.items)
        meta = replace(current, source_state=event.source_state)

    status = TicketStatus.CANCELLED if cancellation else existing.status
    return Decision(
        order_id=existing.order_id, status=status, items=items, meta=meta
    )


# ========== Display events ==========


def _toggle_item(ticket: Ticket, event: DisplayEvent) -> Decision:
    if ticket.status.is_terminal:
        return _unchanged(ticket)
    index = event.item_index
    if index is None or index >= len(ticket.items):
        return _unchanged(ticket)

    items = _copy_items(ticket.items)
    target = items[index]
    target.completed = (
        event.completed if event.completed is not None else not target.completed
    )

    status = ticket.status
    if status == TicketStatus.NEW and any(item.completed for item in items):
        status = TicketStatus.IN_PROGRESS
    if status == TicketStatus.IN_PROGRESS and all(item.completed for item in items):
        status = TicketStatus.READY
    elif status == TicketStatus.READY and not all(item.completed for item in items):
        status = TicketStatus.IN_PROGRESS

    return Decision(
        order_id=ticket.order_id, status=status, items=items, meta=_meta_of(ticket)
    )


def reconcile_display(ticket: Ticket, event: DisplayEvent) -> Decision:
    """Apply a kitchen action to an existing ticket"""
    action = event.action
    meta = _meta_of(ticket)

    if action == DisplayAction.MARK_READY:
        if ticket.status not in ACTIVE_STATUSES:
            return _unchanged(ticket)
        return Decision(
            order_id=ticket.order_id,
            status=TicketStatus.READY,
            items=_copy_items(ticket.items, completed=True),
            meta=meta,
        )

    if action == DisplayAction.COMPLETE:
        if ticket.status.is_terminal:
            return _unchanged(ticket)
        return Decision(
            order_id=ticket.order_id,
            status=TicketStatus.DONE,
            items=_copy_items(ticket.items, completed=True),
            meta=meta,
        )

    if action == DisplayAction.CANCEL:
        return Decision(
            order_id=ticket.order_id,
            status=TicketStatus.CANCELLED,
            items=_copy_items(ticket.items),
            meta=meta,
        )

    if action == DisplayAction.REACTIVATE:
        if not ticket.status.is_locked:
            return _unchanged(ticket)
        return Decision(
            order_id=ticket.order_id,
            status=TicketStatus.IN_PROGRESS,
            items=_copy_items(ticket.items, completed=False),
            meta=meta,
        )

    if action == DisplayAction.ITEM_TOGGLE:
        return _toggle_item(ticket, event)

    if action == DisplayAction.PRIORITY_TOGGLE:
        flag = (
            event.is_prioritized
            if event.is_prioritized is not None
            else not ticket.is_prioritized
        )
        return replace(_unchanged(ticket), meta=replace(meta, is_prioritized=flag))

    return _unchanged(ticket)


def reconcile(
    existing: Optional[Ticket], event: TicketEvent, now: Optional[datetime] = None
) -> Optional[Decision]:
    """
    Compute the next state of a ticket for one event.

    Returns ``None`` when the event must be dropped: a display action for a
    ticket that does not exist, or a session-only action such as a sync
    request.
    """
    if isinstance(event, SourceEvent):
        return reconcile_source(existing, event, now=now)

    if existing is None:
        return None
    if event.action in (DisplayAction.SYNC_REQUEST, DisplayAction.PING):
        return None
    return reconcile_display(existing, event)
