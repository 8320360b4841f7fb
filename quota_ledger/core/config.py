"""Application settings and environment configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quota_ledger.core.units import MAX_PRICE_PER_GB, MICRO_UNITS_PER_UNIT

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=[DEFAULT_ENV_FILE, ".env"],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./quota_ledger.db"

    # Create tables during bootstrap instead of relying on external migrations.
    db_auto_create: bool = False

    # Identities
    owner_principal: str = ""
    custody_principal: str = "quota-ledger-custody"

    # Pricing, in payment micro-units per GB. The live price is ledger state.
    default_price_per_gb: int = MICRO_UNITS_PER_UNIT

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    log_use_utc: bool = False

    @model_validator(mode="after")
    def _defaults(self) -> Self:
        if self.default_price_per_gb <= 0 or self.default_price_per_gb > MAX_PRICE_PER_GB:
            raise ValueError(
                f"DEFAULT_PRICE_PER_GB must be between 1 and {MAX_PRICE_PER_GB} micro-units.",
            )
        if not self.custody_principal.strip():
            raise ValueError("CUSTODY_PRINCIPAL must be set and non-empty.")
        if self.owner_principal and self.owner_principal == self.custody_principal:
            raise ValueError("OWNER_PRINCIPAL must differ from CUSTODY_PRINCIPAL.")
        if "db_auto_create" not in self.model_fields_set and self.environment == "dev":
            self.db_auto_create = True
        return self


settings = Settings()
