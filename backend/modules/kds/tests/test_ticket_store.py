# backend/modules/kds/tests/test_ticket_store.py

"""
Tests for the in-memory ticket store
"""

from datetime import datetime, timedelta, timezone

from modules.kds.services.ticket_store import TicketStore


class TestTicketStore:

    def test_upsert_and_get(self, make_ticket):
        store = TicketStore()
        store.upsert(make_ticket())

        ticket = store.get("sq-1001")

        assert ticket.order_number == "155"
        assert len(store) == 1

    def test_get_unknown_returns_none(self):
        assert TicketStore().get("missing") is None

    def test_records_are_copied(self, make_ticket):
        """Mutating a returned ticket never touches stored state"""
        store = TicketStore()
        original = make_ticket()
        store.upsert(original)

        original.items[0].completed = True
        fetched = store.get("sq-1001")
        fetched.status = "ready"

        stored = store.get("sq-1001")
        assert stored.items[0].completed is False
        assert stored.status.value == "new"

    def test_upsert_replaces_whole_record(self, make_ticket):
        store = TicketStore()
        store.upsert(make_ticket(note="first"))
        store.upsert(make_ticket(status="ready"))

        ticket = store.get("sq-1001")

        assert ticket.status.value == "ready"
        assert ticket.note is None
        assert len(store) == 1

    def test_list_keeps_insertion_order(self, make_ticket):
        store = TicketStore()
        for order_id in ("a", "b", "c"):
            store.upsert(make_ticket(order_id=order_id))
        store.upsert(make_ticket(order_id="a", status="ready"))

        assert [t.order_id for t in store.list()] == ["a", "b", "c"]

    def test_find_by_number_prefers_active_then_newest(self, make_ticket):
        """Repeated display numbers resolve to the ticket still being cooked"""
        store = TicketStore()
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        store.upsert(make_ticket(order_id="old", status="in-progress", created_at=base))
        store.upsert(
            make_ticket(order_id="done", status="ready", created_at=base + timedelta(hours=2))
        )
        store.upsert(
            make_ticket(order_id="new", status="new", created_at=base + timedelta(hours=1))
        )

        assert store.find_by_number("155").order_id == "new"
        assert store.find_by_number(155).order_id == "new"
        assert store.find_by_number("999") is None

    def test_replace_all_keeps_last_duplicate(self, make_ticket):
        store = TicketStore()
        store.upsert(make_ticket(order_id="stale"))

        store.replace_all(
            [make_ticket(order_id="x", note="one"), make_ticket(order_id="x", note="two")]
        )

        assert store.get("stale") is None
        assert store.get("x").note == "two"
        assert len(store) == 1
