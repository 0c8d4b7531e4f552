# backend/modules/kds/services/ticket_store.py

"""
In-memory store owning every kitchen ticket.
"""

from typing import Dict, Iterable, List, Optional
import logging

from ..schemas.ticket_schemas import Ticket

logger = logging.getLogger(__name__)


class TicketStore:
    """
    Authoritative map of order id to ticket.

    Records are replaced whole through ``upsert``; the store keeps its own
    copies so callers never hold a reference to stored state.
    """

    def __init__(self):
        # dicts keep insertion order, which is the listing order
        self._tickets: Dict[str, Ticket] = {}

    def get(self, order_id: str) -> Optional[Ticket]:
        ticket = self._tickets.get(order_id)
        return ticket.model_copy(deep=True) if ticket else None

    def upsert(self, ticket: Ticket) -> Ticket:
        """Replace (or insert) the full record for ``ticket.order_id``"""
        stored = ticket.model_copy(deep=True)
        self._tickets[stored.order_id] = stored
        return stored.model_copy(deep=True)

    def list(self) -> List[Ticket]:
        return [ticket.model_copy(deep=True) for ticket in self._tickets.values()]

    def find_by_number(self, order_number: str) -> Optional[Ticket]:
        """
        Resolve a display ticket number to a ticket.

        Ticket numbers repeat over a day, so active tickets win over finished
        ones and the most recently created match wins among equals.
        """
        matches = [
            t for t in self._tickets.values() if t.order_number == str(order_number)
        ]
        if not matches:
            return None
        best = max(
            matches,
            key=lambda t: (not t.status.is_locked, t.created_at),
        )
        return best.model_copy(deep=True)

    def replace_all(self, tickets: Iterable[Ticket]) -> None:
        """Swap the whole content, used when restoring a snapshot"""
        restored: Dict[str, Ticket] = {}
        for ticket in tickets:
            if ticket.order_id in restored:
                logger.warning(f"Duplicate order {ticket.order_id} in snapshot, keeping last")
            restored[ticket.order_id] = ticket.model_copy(deep=True)
        self._tickets = restored

    def __len__(self) -> int:
        return len(self._tickets)
