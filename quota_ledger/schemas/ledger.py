"""Schemas for user storage reads, upgrade receipts, and ledger summaries."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

_RUNTIME_TYPE_REFERENCES = (datetime,)


class UserStorageRead(SQLModel):
    """Quota snapshot for one principal.

    ``exists`` is false for principals with no stored record; those report
    the default quota and zero usage without allocating a row.
    """

    principal_id: str
    quota_limit: int = Field(ge=0)
    used_storage: int = Field(ge=0)
    available_storage: int = Field(ge=0)
    last_updated: int = Field(ge=0)
    exists: bool = True


class UpgradeReceipt(SQLModel):
    """Outcome of a paid quota increase."""

    principal_id: str
    additional_gb: int
    additional_bytes: int
    amount_charged: int
    quota_limit: int
    package_id: int | None = None


class LedgerSummaryRead(SQLModel):
    """Global counters and pricing for reporting."""

    total_users: int
    height: int
    price_per_gb: int
    custody_principal: str
    custody_balance: int
    updated_at: datetime
