# backend/modules/kds/tests/test_ticket_engine.py

"""
Tests for the ticket engine: store writes, snapshots and broadcasts
"""

import asyncio
import pytest
from typing import List
from unittest.mock import AsyncMock, MagicMock

from core.exceptions import PersistenceError
from modules.kds.schemas.ticket_schemas import DisplayEvent, SourceItem, Ticket
from modules.kds.services.kds_websocket_manager import KDSWebSocketManager
from modules.kds.services.ticket_engine import TicketEngine, is_observable
from modules.kds.services.ticket_persistence import BaseTicketPersistence
from modules.kds.services.ticket_store import TicketStore


class MemoryPersistence(BaseTicketPersistence):
    """Keeps saved snapshots in a list"""

    def __init__(self, initial: List[Ticket] = None, calls: list = None):
        self.saved: List[List[Ticket]] = []
        self.initial = initial or []
        self.calls = calls if calls is not None else []
        self.fail = False

    def save(self, tickets):
        self.calls.append("save")
        if self.fail:
            raise PersistenceError("disk full")
        self.saved.append(tickets)

    def load(self):
        return list(self.initial)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def persistence(calls):
    return MemoryPersistence(calls=calls)


@pytest.fixture
def hub(calls):
    hub = MagicMock(spec=KDSWebSocketManager)

    async def record(ticket):
        calls.append("broadcast")
        return 1

    hub.broadcast_order_changed = AsyncMock(side_effect=record)
    return hub


@pytest.fixture
def engine(persistence, hub):
    return TicketEngine(TicketStore(), persistence, hub)


def display(action, **kwargs):
    kwargs.setdefault("order_id", "sq-1001")
    return DisplayEvent(action=action, **kwargs)


class TestTicketEngine:

    @pytest.mark.asyncio
    async def test_new_order_is_stored_saved_and_broadcast(
        self, engine, persistence, hub, make_source_event
    ):
        result = await engine.apply(make_source_event(order_number_hint="155"))

        assert result.created is True
        assert result.observable is True
        assert result.ticket.status.value == "new"
        assert result.ticket.updated_at is not None
        assert engine.get("sq-1001").order_number == "155"
        assert len(persistence.saved) == 1
        hub.broadcast_order_changed.assert_awaited_once()
        hub.bind_snapshot.assert_called_once_with(engine.snapshot)

    @pytest.mark.asyncio
    async def test_snapshot_saved_before_broadcast(self, engine, calls, make_source_event):
        """Displays never see a state the snapshot does not hold"""
        await engine.apply(make_source_event())
        await engine.apply(display("mark-ready"))

        assert calls == ["save", "broadcast", "save", "broadcast"]

    @pytest.mark.asyncio
    async def test_redundant_update_after_ready_is_not_observable(
        self, engine, persistence, hub, make_source_event
    ):
        """A late open update for a ready ticket changes nothing visible"""
        await engine.apply(make_source_event())
        await engine.apply(display("mark-ready"))
        hub.broadcast_order_changed.reset_mock()
        saves = len(persistence.saved)

        result = await engine.apply(
            make_source_event(items=[SourceItem(name="Burger")], note="late")
        )

        assert result.observable is False
        assert result.ticket.status.value == "ready"
        assert [i.name for i in engine.get("sq-1001").items] == ["Hot Dog", "Fries"]
        assert len(persistence.saved) == saves
        hub.broadcast_order_changed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_source_cancel_on_ready_ticket_is_broadcast(
        self, engine, hub, make_source_event
    ):
        await engine.apply(make_source_event())
        await engine.apply(display("mark-ready"))

        result = await engine.apply(make_source_event(state="CANCELED", items=None))

        assert result.ticket.status.value == "cancelled"
        assert result.previous_status.value == "ready"
        assert result.status_changed is True
        broadcast_ticket = hub.broadcast_order_changed.await_args.args[0]
        assert broadcast_ticket.status.value == "cancelled"

    @pytest.mark.asyncio
    async def test_item_toggles_promote_ticket(self, engine, make_source_event):
        await engine.apply(make_source_event())

        first = await engine.apply(display("item-toggle", item_index=0, completed=True))
        last = await engine.apply(display("item-toggle", item_index=1, completed=True))

        assert first.ticket.status.value == "in-progress"
        assert last.ticket.status.value == "ready"

    @pytest.mark.asyncio
    async def test_display_event_for_unknown_order_is_dropped(
        self, engine, persistence, hub
    ):
        result = await engine.apply(display("mark-ready", order_id="missing"))

        assert result.dropped is True
        assert result.dropped_reason == "unknown order"
        assert result.ticket is None
        assert engine.snapshot() == []
        assert persistence.saved == []
        hub.broadcast_order_changed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_display_event_resolves_order_number(self, engine, make_source_event):
        """Displays that only know the ticket number still reach the order"""
        await engine.apply(make_source_event(order_number_hint="Order #155"))

        result = await engine.apply(
            DisplayEvent(action="mark-ready", order_number=155)
        )

        assert result.ticket.order_id == "sq-1001"
        assert result.ticket.status.value == "ready"

    @pytest.mark.asyncio
    async def test_persistence_failure_still_broadcasts(
        self, engine, persistence, hub, make_source_event
    ):
        persistence.fail = True

        result = await engine.apply(make_source_event())

        assert result.observable is True
        assert engine.get("sq-1001") is not None
        hub.broadcast_order_changed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_events_are_serialized(self, engine, make_source_event):
        """Every snapshot equals the replay of the applied events"""
        await engine.apply(make_source_event())
        events = [
            display("item-toggle", item_index=0, completed=True),
            display("item-toggle", item_index=1, completed=True),
            display("priority-toggle", is_prioritized=True),
        ]

        await asyncio.gather(*(engine.apply(e) for e in events))

        ticket = engine.get("sq-1001")
        assert ticket.status.value == "ready"
        assert ticket.is_prioritized is True
        assert all(item.completed for item in ticket.items)

    @pytest.mark.asyncio
    async def test_updated_at_only_moves_on_observable_change(
        self, engine, make_source_event
    ):
        created = await engine.apply(make_source_event())

        same = await engine.apply(make_source_event())

        assert same.observable is False
        assert same.ticket.updated_at == created.ticket.updated_at

    def test_restore_loads_snapshot(self, hub, make_ticket):
        persistence = MemoryPersistence(initial=[make_ticket(), make_ticket(order_id="x")])
        engine = TicketEngine(TicketStore(), persistence, hub)

        assert engine.restore() == 2
        assert [t.order_id for t in engine.snapshot()] == ["sq-1001", "x"]

    @pytest.mark.asyncio
    async def test_full_sync_matches_store_after_mixed_events(
        self, persistence, make_source_event
    ):
        """The snapshot displays receive is exactly the store listing"""
        hub = KDSWebSocketManager(send_timeout=0.05)
        engine = TicketEngine(TicketStore(), persistence, hub)

        for n in range(1, 7):
            await engine.apply(make_source_event(order_id=f"o{n}", order_number_hint=str(n)))
        await engine.apply(display("mark-ready", order_id="o2"))
        await engine.apply(make_source_event(order_id="o2", note="late"))
        await engine.apply(display("mark-ready", order_id="o3"))
        await engine.apply(make_source_event(order_id="o3", state="CANCELED", items=None))
        await engine.apply(display("reactivate", order_id="o3"))
        await engine.apply(make_source_event(order_id="o5", state="CANCELED", items=None))
        await engine.apply(display("mark-ready", order_id="missing"))

        orders = hub.build_full_sync()["orders"]

        assert orders == [ticket.to_wire() for ticket in engine.store.list()]
        assert [o["orderId"] for o in orders] == [f"o{n}" for n in range(1, 7)]
        assert [o["status"] for o in orders] == [
            "new", "ready", "in-progress", "new", "cancelled", "new"
        ]
        assert orders[1]["note"] is None
        assert persistence.saved[-1] == engine.store.list()


class TestObservability:

    def test_new_ticket_is_observable(self, make_ticket):
        assert is_observable(None, make_ticket()) is True

    def test_source_state_alone_is_not_observable(self, make_ticket):
        before = make_ticket(source_state="OPEN")
        after = make_ticket(source_state="COMPLETED")

        assert is_observable(before, after) is False

    def test_item_completion_is_observable(self, make_ticket):
        before = make_ticket()
        after = make_ticket()
        after.items[0].completed = True

        assert is_observable(before, after) is True
