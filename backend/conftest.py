"""
Pytest configuration file for backend testing.
"""
import sys
from pathlib import Path

import pytest

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from core.config import Settings  # noqa: E402
from modules.kds.schemas.ticket_schemas import (  # noqa: E402
    SourceEvent,
    SourceItem,
    Ticket,
    TicketItem,
)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing every durable file at a temporary directory"""
    return Settings(
        environment="test",
        persistence_backend="json",
        data_file=str(tmp_path / "orders.json"),
        database_url=f"sqlite:///{tmp_path / 'orders.db'}",
        event_queue_size=100,
        websocket_send_timeout_seconds=1.0,
        websocket_receive_timeout_seconds=30.0,
        square_access_token=None,
        order_fetch_timeout_seconds=0.5,
    )


@pytest.fixture
def make_ticket():
    """Factory for tickets with sensible defaults"""

    def _make(order_id="sq-1001", order_number="155", status="new", items=None, **kwargs):
        if items is None:
            items = [
                TicketItem(name="Hot Dog", quantity=2, modifiers=["Mustard"]),
                TicketItem(name="Fries", quantity=1),
            ]
        return Ticket(
            order_id=order_id,
            order_number=order_number,
            status=status,
            items=items,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_source_event():
    """Factory for order-source events"""

    def _make(order_id="sq-1001", state="OPEN", items="default", **kwargs):
        if items == "default":
            items = [
                SourceItem(name="Hot Dog", quantity="2", modifiers=["Mustard"]),
                SourceItem(name="Fries", quantity="1"),
            ]
        return SourceEvent(order_id=order_id, source_state=state, items=items, **kwargs)

    return _make
