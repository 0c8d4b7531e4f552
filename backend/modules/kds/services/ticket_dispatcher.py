# backend/modules/kds/services/ticket_dispatcher.py

"""
Bounded event queue in front of the ticket engine.

Ingress code hands events over with ``submit``, which never waits: the POS
webhook must be acknowledged promptly whatever happens downstream. A single
worker task drains the queue, fetches missing order details from the POS
when needed, and applies each event to the engine in arrival order.
"""

from typing import Optional
import asyncio
import logging

from core.exceptions import MalformedEventError, OrderSourceError
from modules.pos.adapters.base_adapter import BasePOSAdapter
from ..schemas.ticket_schemas import SourceEvent
from .ticket_engine import ChangeResult, TicketEngine
from .ticket_reconciler import TicketEvent

logger = logging.getLogger(__name__)


class TicketEventDispatcher:
    """Owns the event queue and the worker that feeds the engine"""

    def __init__(
        self,
        engine: TicketEngine,
        order_source: Optional[BasePOSAdapter] = None,
        maxsize: int = 1000,
        fetch_timeout: float = 5.0,
    ):
        self.engine = engine
        self.order_source = order_source
        self.fetch_timeout = fetch_timeout
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None
        self.dropped_events = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self):
        if not self.is_running:
            self._worker = asyncio.create_task(self._run(), name="ticket-dispatcher")
            logger.info("Ticket event dispatcher started")

    async def stop(self, drain: bool = True):
        """Stop the worker, by default after processing queued events"""
        if self._worker is None:
            return
        if drain:
            await self.queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Ticket event dispatcher stopped")

    def submit(self, event: TicketEvent) -> bool:
        """Queue an event without waiting; returns False if it was dropped"""
        try:
            self.queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped_events += 1
            logger.error(
                f"Ticket event queue full, dropping {event.origin.value} event",
                extra={"order_id": getattr(event, "order_id", None)},
            )
            return False

    async def join(self):
        """Wait until every queued event has been processed"""
        await self.queue.join()

    async def _run(self):
        while True:
            event = await self.queue.get()
            try:
                await self.process(event)
            except Exception as e:
                logger.exception(f"Error processing ticket event: {e}")
            finally:
                self.queue.task_done()

    async def process(self, event: TicketEvent) -> ChangeResult:
        """Enrich and apply one event immediately"""
        if isinstance(event, SourceEvent):
            event = await self._enrich(event)
        return await self.engine.apply(event)

    def _needs_details(self, event: SourceEvent) -> bool:
        if event.items is not None or event.state.is_cancellation:
            return False
        if self.order_source is None or not self.order_source.can_fetch_orders:
            return False
        existing = self.engine.get(event.order_id)
        # Locked tickets ignore source items anyway
        return existing is None or not existing.status.is_locked

    async def _enrich(self, event: SourceEvent) -> SourceEvent:
        """Fill in items and metadata for item-less webhook events"""
        if not self._needs_details(event):
            return event

        try:
            details = await asyncio.wait_for(
                self.order_source.fetch_order(event.order_id),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out fetching order {event.order_id}, using cached data")
            return event
        except (OrderSourceError, MalformedEventError) as e:
            logger.warning(f"Could not fetch order {event.order_id}: {e}, using cached data")
            return event

        if details is None:
            return event

        return details.model_copy(
            update={
                "source_state": event.source_state or details.source_state,
                "created_at": details.created_at or event.created_at,
                "event_type": event.event_type,
            }
        )
