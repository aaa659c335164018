"""
Application Configuration

Reads trip ledger settings from environment variables.

Environment Variables:
    TRIP_LEDGER_TITLE              - API title (default: Trip Ledger)
    TRIP_LEDGER_CURRENCY_SYMBOL    - Symbol used in warnings (default: $)
    TRIP_LEDGER_LOG_LEVEL          - Logging level name (default: INFO)
    TRIP_LEDGER_JOIN_CODE_LENGTH   - Length of trip join codes (default: 6)
    TRIP_LEDGER_HOST               - Host for uvicorn (default: 127.0.0.1)
    TRIP_LEDGER_PORT               - Port for uvicorn (default: 8000)

Functions:
    get_settings: Get the cached Settings instance.
    load_settings: Build Settings from an environment mapping.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "TRIP_LEDGER_"


class Settings(BaseModel):
    """Runtime settings for the trip ledger service."""

    title: str = "Trip Ledger"
    currency_symbol: str = "$"
    log_level: str = "INFO"
    join_code_length: int = Field(6, ge=4, le=12)
    host: str = "127.0.0.1"
    port: int = Field(8000, gt=0, lt=65536)

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value


def load_settings(environ=None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ).

    Raises:
        pydantic.ValidationError: If a variable has an invalid value.
    """
    environ = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    return Settings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide Settings, loaded once from os.environ."""
    return load_settings()
