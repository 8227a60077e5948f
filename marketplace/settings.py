"""
Central application configuration using pydantic-settings.

This module provides typed access to environment-based configuration for:
- Marketplace behaviour (currency, settlement worker, demo data)
- The HTTP server
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarketplaceSettings(BaseSettings):
    """
    Marketplace configuration.

    Environment variables (prefix: MARKET_):
        MARKET_DEFAULT_CURRENCY             - Currency tag for new items (default: ETH)
        MARKET_SETTLEMENT_ENABLED           - Run the background settlement worker (default: true)
        MARKET_SETTLEMENT_INTERVAL_SECONDS  - Seconds between settlement sweeps (default: 5)
        MARKET_SEED_DEMO_DATA               - Load demo users, items and an auction at startup
        MARKET_MAX_PAGE_SIZE                - Upper bound for list endpoints (default: 100)
        MARKET_LOG_LEVEL                    - Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="MARKET_",
    )

    default_currency: str = Field(
        default="ETH",
        min_length=1,
        max_length=10,
        description="Currency tag applied to newly minted items.",
    )
    settlement_enabled: bool = Field(
        default=True,
        description="Settle expired auctions in the background.",
    )
    settlement_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Delay between settlement sweeps.",
    )
    seed_demo_data: bool = Field(
        default=False,
        description="Populate the store with demo data on startup.",
    )
    max_page_size: int = Field(default=100, ge=1, le=1000)
    log_level: str = Field(default="INFO")

    @field_validator("default_currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class ServerSettings(BaseSettings):
    """
    HTTP server configuration.

    Environment variables (prefix: SERVER_):
        SERVER_HOST   - Bind address (default: 127.0.0.1)
        SERVER_PORT   - Port (default: 8000)
        SERVER_RELOAD - Enable uvicorn auto-reload (default: false)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="SERVER_",
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = Field(default=False)


@lru_cache
def get_settings() -> MarketplaceSettings:
    """Return cached marketplace settings instance."""
    return MarketplaceSettings()


@lru_cache
def get_server_settings() -> ServerSettings:
    """Return cached server settings instance."""
    return ServerSettings()
