"""Runtime configuration, read from ``SEALVAULT_*`` environment variables or ``.env``."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIST_PER_SUI = 1_000_000_000
FROST_PER_WAL = 1_000_000_000


class Settings(BaseSettings):
    """Settings for the sealed storage layer.

    Amounts are in base units (MIST for the primary asset, FROST for the
    storage asset).
    """

    model_config = SettingsConfigDict(
        env_prefix="SEALVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    network: str = Field(default="testnet", description="Ledger network name")
    package_id: str = Field(
        default="0x" + "5e" * 32,
        description="Package that publishes the whitelist module",
    )
    whitelist_module: str = Field(default="whitelist", description="Module name of the policy contract")

    # Threshold encryption
    threshold: int = Field(default=2, description="Key servers that must cooperate to decrypt")
    session_ttl_minutes: int = Field(default=10, description="Lifetime of a decrypt session proof")

    # Pre-flight funds check
    primary_coin_type: str = Field(default="0x2::sui::SUI")
    storage_coin_type: str = Field(default="0x" + "8e" * 32 + "::wal::WAL")
    min_primary_balance: int = Field(default=3 * MIST_PER_SUI // 10)
    min_storage_balance: int = Field(default=3 * FROST_PER_WAL // 10)

    # Blob store
    default_epochs: int = Field(default=1, description="Retention requested when none is given")
    epoch_duration_seconds: int = Field(default=86400, description="Approximate wall-clock length of an epoch")

    confirmation_timeout_seconds: float = Field(
        default=30.0,
        description="How long send() waits for the add-member transaction to be confirmed",
    )

    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")

    @field_validator("threshold", "session_ttl_minutes", "default_epochs", "epoch_duration_seconds")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @field_validator("package_id")
    @classmethod
    def _hex_id(cls, value: str) -> str:
        if not value.startswith("0x"):
            raise ValueError("package_id must be a 0x-prefixed hex string")
        return value.lower()

    @property
    def whitelist_prefix(self) -> str:
        """``<package>::<module>`` used for move call targets and object types."""
        return f"{self.package_id}::{self.whitelist_module}"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    global _settings
    _settings = None
