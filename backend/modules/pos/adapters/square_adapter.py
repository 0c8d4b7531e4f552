import httpx
import logging
from typing import Dict, Any, List, Optional
from datetime import datetime

from core.exceptions import MalformedEventError, OrderSourceError
from modules.kds.schemas.ticket_schemas import SourceEvent, SourceItem
from .base_adapter import BasePOSAdapter

logger = logging.getLogger(__name__)


class SquareEventType:
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_FULFILLMENT_UPDATED = "order.fulfillment.updated"


SUPPORTED_EVENT_TYPES = {
    SquareEventType.ORDER_CREATED,
    SquareEventType.ORDER_UPDATED,
    SquareEventType.ORDER_FULFILLMENT_UPDATED,
}

# Keys under data.object holding the partial order for each event type
PARTIAL_ORDER_KEYS = ("order_created", "order_updated", "order_fulfillment_updated")


def combine_item_name(name: Optional[str], variation: Optional[str]) -> str:
    """Square sends base name and variation separately, e.g. "Dog" / "Large" """
    name = (name or "").strip()
    variation = (variation or "").strip()
    if not name:
        return variation or "Item"
    if variation and variation.lower() != name.lower():
        return f"{name} ({variation})"
    return name


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable Square timestamp {value!r}")
        return None


class SquareAdapter(BasePOSAdapter):
    def __init__(
        self,
        credentials: Dict[str, Any],
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(credentials)
        self.base_url = credentials.get("base_url", "https://connect.squareup.com/v2")
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {credentials.get('access_token')}",
            "Content-Type": "application/json",
        }
        if credentials.get("api_version"):
            self.headers["Square-Version"] = credentials["api_version"]

    @property
    def can_fetch_orders(self) -> bool:
        return bool(self.credentials.get("access_token"))

    def normalize_webhook(self, payload: Any) -> Optional[SourceEvent]:
        if not isinstance(payload, dict):
            raise MalformedEventError("Square webhook body must be a JSON object")

        event_type = payload.get("type")
        if event_type not in SUPPORTED_EVENT_TYPES:
            logger.debug(f"Ignoring Square event {event_type}")
            return None

        data = payload.get("data")
        if not isinstance(data, dict):
            raise MalformedEventError(f"Square {event_type} event has no data")
        obj = data.get("object") or {}
        if not isinstance(obj, dict):
            raise MalformedEventError(f"Square {event_type} event has no data.object")

        order = obj.get("order")
        if isinstance(order, dict) and order.get("id"):
            event = self.transform_order_data(order)
            return event.model_copy(update={"event_type": event_type})

        partial = next(
            (obj[key] for key in PARTIAL_ORDER_KEYS if isinstance(obj.get(key), dict)),
            {},
        )
        order_id = partial.get("order_id") or data.get("id")
        if not order_id:
            raise MalformedEventError(f"Square {event_type} event has no order id")

        return SourceEvent(
            order_id=str(order_id),
            source_state=partial.get("state"),
            created_at=parse_timestamp(partial.get("created_at")),
            event_type=event_type,
        )

    def transform_order_data(self, order: Dict[str, Any]) -> SourceEvent:
        order_id = order.get("id")
        if not order_id:
            raise MalformedEventError("Square order has no id")

        line_items = order.get("line_items")
        items = None
        if isinstance(line_items, list):
            items = [self._transform_line_item(li) for li in line_items if isinstance(li, dict)]

        fulfillment = self._first_fulfillment(order)
        pickup = fulfillment.get("pickup_details") or {}

        return SourceEvent(
            order_id=str(order_id),
            source_state=order.get("state"),
            order_number_hint=(
                order.get("ticket_name")
                or order.get("display_name")
                or order.get("reference_id")
            ),
            items=items,
            service_type=(fulfillment.get("type") or "").lower() or None,
            note=order.get("note") or pickup.get("note"),
            created_at=parse_timestamp(order.get("created_at")),
        )

    def _transform_line_item(self, line_item: Dict[str, Any]) -> SourceItem:
        modifiers: List[str] = [
            m.get("name")
            for m in line_item.get("modifiers") or []
            if isinstance(m, dict) and m.get("name")
        ]
        return SourceItem(
            name=combine_item_name(line_item.get("name"), line_item.get("variation_name")),
            quantity=line_item.get("quantity"),
            modifiers=modifiers,
            key=line_item.get("uid"),
            note=line_item.get("note") or None,
        )

    @staticmethod
    def _first_fulfillment(order: Dict[str, Any]) -> Dict[str, Any]:
        fulfillments = order.get("fulfillments")
        if isinstance(fulfillments, list) and fulfillments and isinstance(fulfillments[0], dict):
            return fulfillments[0]
        return {}

    async def fetch_order(self, order_id: str) -> Optional[SourceEvent]:
        if not self.can_fetch_orders:
            return None

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/orders/{order_id}",
                    headers=self.headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                order = response.json().get("order")
            except httpx.HTTPError as e:
                raise OrderSourceError(f"Square API error: {str(e)}") from e
            except ValueError as e:
                raise OrderSourceError(f"Square returned invalid JSON: {str(e)}") from e

        if not isinstance(order, dict):
            raise OrderSourceError(f"Square returned no order for {order_id}")
        return self.transform_order_data(order)
