"""Runtime configuration, read from ``FULFILLMENT_*`` environment variables
or a ``.env`` file in the working directory."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# When installed in editable mode the project root is the repo root.
_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FULFILLMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = f"sqlite:///{_DATA_DIR / 'fulfillment.db'}"
    echo_sql: bool = False

    # Application
    log_level: str = "info"

    # Inventory integration; when off, deliveries do not move stock
    inventory_enabled: bool = True
