# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Every field can be overridden with an ``AGENCYDESK_``-prefixed
    environment variable, e.g. ``AGENCYDESK_RATE_CACHE_TTL_HOURS=1``.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENCYDESK_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite:///./agencydesk.db"
    log_level: str = "INFO"

    # Exchange rate feed (currencylayer "live" endpoint)
    currencylayer_api_key: str | None = None
    rate_api_url: str = "https://api.currencylayer.com"
    rate_base_currency: str = Field(default="EUR", min_length=3, max_length=3)
    supported_currencies: list[str] = Field(
        default_factory=lambda: ["USD", "EUR", "RON", "GBP"]
    )
    rate_cache_ttl_hours: float = Field(default=24, gt=0)
    rate_refresh_interval_hours: float = Field(default=24, gt=0)
    rate_request_timeout_seconds: float = Field(default=10.0, gt=0)
    rate_refresh_enabled: bool = True

    # Currency assumed for records that do not carry one
    default_currency: str = Field(default="USD", min_length=3, max_length=3)

    @field_validator("rate_base_currency", "default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Normalize currency codes to upper case."""
        return v.upper()

    @field_validator("supported_currencies")
    @classmethod
    def upper_currencies(cls, v: list[str]) -> list[str]:
        """Normalize and de-duplicate the supported currency list."""
        seen: list[str] = []
        for code in v:
            code = code.strip().upper()
            if code and code not in seen:
                seen.append(code)
        return seen


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
