# backend/modules/kds/services/ticket_engine.py

"""
Reconciliation engine: the single writer of kitchen ticket state.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import asyncio
import logging

from core.exceptions import PersistenceError
from ..enums.ticket_enums import EventOrigin, TicketStatus
from ..schemas.ticket_schemas import DisplayEvent, Ticket, utc_now
from .kds_websocket_manager import KDSWebSocketManager
from .ticket_persistence import BaseTicketPersistence
from .ticket_reconciler import TicketEvent, reconcile
from .ticket_store import TicketStore

logger = logging.getLogger(__name__)

# Fields whose change is worth saving and showing on the displays
OBSERVABLE_FIELDS = (
    "status",
    "items",
    "order_number",
    "service_type",
    "note",
    "is_prioritized",
)


@dataclass
class ChangeResult:
    """Outcome of applying one event"""

    ticket: Optional[Ticket]
    created: bool = False
    previous_status: Optional[TicketStatus] = None
    observable: bool = False
    dropped_reason: Optional[str] = None

    @property
    def status_changed(self) -> bool:
        return (
            self.ticket is not None
            and self.previous_status is not None
            and self.ticket.status != self.previous_status
        )

    @property
    def dropped(self) -> bool:
        return self.dropped_reason is not None


def is_observable(previous: Optional[Ticket], current: Ticket) -> bool:
    if previous is None:
        return True
    return any(
        getattr(previous, field) != getattr(current, field)
        for field in OBSERVABLE_FIELDS
    )


class TicketEngine:
    """
    Applies events to the ticket store one at a time.

    Each ``apply`` runs read, reconcile, write, save and publish under one
    lock, so concurrent events for the same order are serialized and
    displays receive deltas in the order they were decided.
    """

    def __init__(
        self,
        store: TicketStore,
        persistence: BaseTicketPersistence,
        hub: KDSWebSocketManager,
    ):
        self.store = store
        self.persistence = persistence
        self.hub = hub
        self.lock = asyncio.Lock()
        self.hub.bind_snapshot(self.snapshot)

    def snapshot(self) -> List[Ticket]:
        """Current tickets in insertion order"""
        return self.store.list()

    def get(self, order_id: str) -> Optional[Ticket]:
        return self.store.get(order_id)

    def restore(self) -> int:
        """Load the last snapshot into the store; called once at startup"""
        tickets = self.persistence.load()
        self.store.replace_all(tickets)
        logger.info(f"Restored {len(self.store)} tickets")
        return len(self.store)

    def _lookup(self, event: TicketEvent) -> Optional[Ticket]:
        if event.origin == EventOrigin.SOURCE:
            return self.store.get(event.order_id)
        ticket = None
        if event.order_id:
            ticket = self.store.get(event.order_id)
        if ticket is None and event.order_number:
            ticket = self.store.find_by_number(event.order_number)
        return ticket

    async def apply(self, event: TicketEvent, now: Optional[datetime] = None) -> ChangeResult:
        """Reconcile one event into the store, then persist and broadcast"""
        async with self.lock:
            existing = self._lookup(event)
            decision = reconcile(existing, event, now=now)

            if decision is None:
                reference = event.order_id or getattr(event, "order_number", None)
                reason = "unknown order" if existing is None else "session-only action"
                logger.debug(f"Dropped {event.origin.value} event for {reference}: {reason}")
                return ChangeResult(ticket=None, dropped_reason=reason)

            candidate = decision.to_ticket(
                updated_at=existing.updated_at if existing else None
            )
            observable = is_observable(existing, candidate)

            if decision.locked and not observable:
                logger.info(
                    f"Source update for order {candidate.order_id} ignored, "
                    f"ticket is {candidate.status.value}"
                )

            if observable:
                candidate.updated_at = utc_now()

            if existing is None or observable or candidate != existing:
                stored = self.store.upsert(candidate)
            else:
                stored = existing

            result = ChangeResult(
                ticket=stored,
                created=existing is None,
                previous_status=existing.status if existing else None,
                observable=observable,
            )

            if observable:
                await self._persist()
                await self.hub.broadcast_order_changed(stored)
                self._log_change(result, event)

            return result

    async def _persist(self):
        """Best-effort save; a failed write never blocks the broadcast"""
        tickets = self.store.list()
        try:
            await asyncio.to_thread(self.persistence.save, tickets)
        except PersistenceError as e:
            logger.error(f"Failed to persist ticket snapshot: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error persisting ticket snapshot: {e}")

    def _log_change(self, result: ChangeResult, event: TicketEvent):
        ticket = result.ticket
        if result.created:
            logger.info(f"New order #{ticket.order_number} ({ticket.order_id})")
        elif result.status_changed:
            origin = (
                event.action.value
                if isinstance(event, DisplayEvent)
                else f"source {event.source_state}"
            )
            logger.info(
                f"Order #{ticket.order_number} {result.previous_status.value} -> "
                f"{ticket.status.value} ({origin})"
            )
        else:
            logger.debug(f"Order #{ticket.order_number} updated")
