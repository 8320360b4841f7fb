"""Administrator-defined quota upgrade packages."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field

from quota_ledger.core.time import utcnow
from quota_ledger.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class QuotaPackage(QueryModel, table=True):
    """Purchasable bundle of additional gigabytes at a fixed price."""

    __tablename__ = "quota_packages"  # pyright: ignore[reportAssignmentType]

    id: int = Field(
        primary_key=True,
        sa_type=BigInteger,
        sa_column_kwargs={"autoincrement": False},
    )
    additional_gb: int = Field(ge=1)
    additional_bytes: int = Field(sa_type=BigInteger)
    price: int = Field(sa_type=BigInteger)
    active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
