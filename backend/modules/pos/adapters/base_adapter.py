from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from modules.kds.schemas.ticket_schemas import SourceEvent


class BasePOSAdapter(ABC):
    """Order source feeding kitchen tickets from a POS system"""

    def __init__(self, credentials: Dict[str, Any]):
        self.credentials = credentials

    @abstractmethod
    def normalize_webhook(self, payload: Any) -> Optional[SourceEvent]:
        """
        Turn a webhook body into a ticket event.

        Returns None for event types the kitchen does not care about and
        raises MalformedEventError when the body cannot be understood.
        """
        pass

    @abstractmethod
    async def fetch_order(self, order_id: str) -> Optional[SourceEvent]:
        """Fetch full order details, raising OrderSourceError on failure"""
        pass

    @abstractmethod
    def transform_order_data(self, order: Dict[str, Any]) -> SourceEvent:
        """Transform a POS-specific order into a ticket event"""
        pass

    @property
    def can_fetch_orders(self) -> bool:
        """Whether the adapter is configured to call the POS API"""
        return True
