"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup; if a setting is malformed, the app fails fast with a clear
error message.

Usage:
    from claims_clearinghouse.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Claims Clearinghouse."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database ---
    database_url: str = (
        "postgresql+asyncpg://clearinghouse:clearinghouse_dev"
        "@localhost:5432/claims_clearinghouse"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Claims ---
    default_min_stake: int = 15_000_000  # 150 tokens at 5 decimals
    custody_address: str = "0x000000000000000000000000000000000000c1a1"

    # --- Access control (administrator set is managed outside this service) ---
    owner_address: str = ""
    administrator_addresses: str = ""

    # --- Token ledger ---
    # The bundled ledger keeps balances in the claims database. Minting is
    # only exposed while this is enabled.
    simulated_ledger: bool = True

    # --- MCP ---
    # Transport of the tool server mounted at /mcp
    mcp_transport: Literal["sse", "streamable-http"] = "sse"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def administrator_address_list(self) -> list[str]:
        """Parse comma-separated administrator addresses into a list."""
        if not self.administrator_addresses:
            return []
        return [
            a.strip().lower() for a in self.administrator_addresses.split(",") if a.strip()
        ]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
