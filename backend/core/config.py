"""
Configuration management for the kitchen ticket service.

All values can be overridden with ``KDS_``-prefixed environment variables
or a ``.env`` file in the working directory.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="KDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Persistence Configuration
    persistence_backend: str = "json"  # json | sql
    data_file: str = "data/orders.json"
    database_url: str = "sqlite:///./data/orders.db"

    # Event processing
    event_queue_size: int = 1000

    # Display sessions
    websocket_send_timeout_seconds: float = 5.0
    websocket_receive_timeout_seconds: float = 30.0  # heartbeat interval

    # Square order source
    square_access_token: Optional[str] = None
    square_base_url: str = "https://connect.squareup.com/v2"
    square_api_version: str = "2024-01-18"
    order_fetch_timeout_seconds: float = 5.0

    @field_validator("persistence_backend")
    @classmethod
    def validate_persistence_backend(cls, v):
        v = v.lower()
        if v not in {"json", "sql"}:
            raise ValueError("persistence_backend must be 'json' or 'sql'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
