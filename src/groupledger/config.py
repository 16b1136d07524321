"""Configuration management for GroupLedger."""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .money import DEFAULT_TOLERANCE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROUPLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ledger backend API
    api_base_url: str = "http://localhost:3000"
    api_token: str | None = None
    request_timeout: float = 30.0

    # Balances below this many major units count as settled. Shared by split
    # validation and the "settled up" checks.
    settle_tolerance: Decimal = Field(default=DEFAULT_TOLERANCE, gt=0)

    # Currency detection overrides
    default_currency: str | None = None
    timezone: str | None = None
    locale: str | None = None


def load_settings(**overrides) -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings(**overrides)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your .env file and GROUPLEDGER_* "
            f"environment variables.\n"
            f"Error: {e}"
        ) from e
