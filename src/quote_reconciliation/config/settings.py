"""Configuration settings for quote reconciliation."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reconciliation
    default_currency: str = Field(
        default="USD", validation_alias="QUOTE_DEFAULT_CURRENCY"
    )
    amount_tolerance: float = Field(
        default=0.01,
        ge=0,
        validation_alias="QUOTE_AMOUNT_TOLERANCE",
        description="Currency-unit tolerance for float noise between systems",
    )
    updatable_statuses: list[str] = Field(
        default_factory=lambda: ["DRAFT"],
        validation_alias="QUOTE_UPDATABLE_STATUSES",
        description="Accounting quote statuses that may be overwritten",
    )
    strict_currency: bool = Field(
        default=False, validation_alias="QUOTE_STRICT_CURRENCY"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    @field_validator("default_currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("updatable_statuses")
    @classmethod
    def _upper_statuses(cls, value: list[str]) -> list[str]:
        return [status.strip().upper() for status in value if status.strip()]


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
