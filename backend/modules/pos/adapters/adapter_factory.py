from typing import Dict, Any, Optional
from .base_adapter import BasePOSAdapter
from .square_adapter import SquareAdapter
from ..enums.pos_enums import POSVendor
from core.config import Settings, settings as default_settings


class AdapterFactory:
    @staticmethod
    def create_adapter(
        vendor: POSVendor, credentials: Dict[str, Any], timeout: float = 5.0
    ) -> BasePOSAdapter:
        adapters = {
            POSVendor.SQUARE: SquareAdapter,
        }

        adapter_class = adapters.get(vendor)
        if not adapter_class:
            raise ValueError(f"Unsupported POS vendor: {vendor}")

        return adapter_class(credentials, timeout=timeout)

    @staticmethod
    def from_settings(config: Optional[Settings] = None) -> BasePOSAdapter:
        """Build the Square adapter from environment configuration"""
        config = config or default_settings
        return AdapterFactory.create_adapter(
            POSVendor.SQUARE,
            {
                "access_token": config.square_access_token,
                "base_url": config.square_base_url,
                "api_version": config.square_api_version,
            },
            timeout=config.order_fetch_timeout_seconds,
        )
