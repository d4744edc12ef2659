"""Configuration management for Split Ledger."""

from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .money import MINOR_UNIT


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPLIT_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database path
    database_path: Path = Path.home() / ".split_ledger" / "split_ledger.db"

    # Seconds to wait for another writer to release the database
    busy_timeout: float = 5.0

    # Rounding quantum for evenly divided shares (0.01 = cents)
    minor_unit: Decimal = MINOR_UNIT

    @field_validator("minor_unit")
    @classmethod
    def minor_unit_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("minor_unit must be positive")
        return v

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the SPLIT_LEDGER_* environment "
            f"variables and your .env file.\n"
            f"Error: {e}"
        ) from e
