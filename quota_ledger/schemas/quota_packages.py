"""Schemas for quota package reads."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import SQLModel

_RUNTIME_TYPE_REFERENCES = (datetime,)


class QuotaPackageRead(SQLModel):
    """Read model for quota packages."""

    id: int
    additional_gb: int
    additional_bytes: int
    price: int
    active: bool
    created_at: datetime
    updated_at: datetime
