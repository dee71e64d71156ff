"""
Configuration management for the adaptation order bot.
Loads settings from environment variables with validation.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent

    # Telegram
    telegram_bot_token: str = Field(..., description="Telegram Bot API token")
    operator_telegram_id: Optional[int] = Field(
        default=None, description="Telegram ID of the operator who reviews failed orders"
    )

    # CryptoBot
    cryptobot_api_token: str = Field(default="", description="Crypto Pay API token")
    cryptobot_base_url: str = Field(
        default="https://pay.crypt.bot/api", description="Crypto Pay API base URL"
    )
    cryptobot_asset: str = Field(default="USDT", description="Invoice asset")
    invoice_expires_in: int = Field(
        default=900, description="Invoice lifetime in seconds"
    )

    # Notion
    notion_api_key: str = Field(default="", description="Notion integration token")
    notion_database_id: str = Field(default="", description="Notion database for orders")
    notion_data_source_id: Optional[str] = Field(
        default=None, description="Notion data source used for completed-order queries"
    )
    notion_version: str = Field(default="2022-06-28", description="Notion API version header")

    # Pricing
    unit_price: Decimal = Field(default=Decimal("10"), description="Price per adaptation")
    fee_multiplier: Decimal = Field(
        default=Decimal("1.03"), description="Gateway fee multiplier applied to the total"
    )

    # Payment reconciliation
    reconcile_interval: float = Field(
        default=10.0, description="Seconds between payment polling ticks"
    )
    payment_check_debounce: float = Field(
        default=10.0, description="Minimum seconds between two polls of one invoice"
    )
    max_payment_attempts: int = Field(
        default=12, description="Polls before a pending invoice is abandoned"
    )
    task_create_retries: int = Field(
        default=3, description="Attempts to create the task after payment"
    )
    task_create_backoff: float = Field(
        default=2.0, description="Base delay in seconds, multiplied by the attempt number"
    )

    # Sweeps
    delivery_sweep_interval: float = Field(
        default=60.0, description="Seconds between completed-task scans"
    )
    session_idle_timeout: float = Field(
        default=3600.0, description="Seconds of inactivity before a session is dropped"
    )
    session_sweep_interval: float = Field(
        default=300.0, description="Seconds between idle-session sweeps"
    )

    # Debug
    debug: bool = Field(default=False, description="Debug mode")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
