"""Runtime configuration read from environment variables."""

import os
from typing import Optional

from pydantic import BaseModel, Field, SecretStr

from .connectors.base import ConnectorAuthType, HeaderKey, NoKey


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///./payments_adapter.db"
    helcim_base_url: str = "https://api.helcim.com/v2/"
    helcim_api_key: Optional[SecretStr] = None
    connector_timeout_seconds: float = Field(default=30.0, gt=0)
    api_key: Optional[SecretStr] = None
    merchant_id: str = "merchant_default"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "helcim_base_url": os.getenv("HELCIM_BASE_URL"),
            "helcim_api_key": os.getenv("HELCIM_API_KEY"),
            "connector_timeout_seconds": os.getenv("CONNECTOR_TIMEOUT_SECONDS"),
            "api_key": os.getenv("API_KEY"),
            "merchant_id": os.getenv("MERCHANT_ID"),
        }
        return cls(**{k: v for k, v in values.items() if v})


def get_settings() -> Settings:
    return Settings.from_env()


def resolve_connector_auth(settings: Settings) -> ConnectorAuthType:
    """Auth-context provider for the Helcim connector.

    Without a configured key this yields ``NoKey``, which the connector
    rejects with ``FailedToObtainAuthType``.
    """
    if settings.helcim_api_key is None:
        return NoKey()
    return HeaderKey(api_key=settings.helcim_api_key)
