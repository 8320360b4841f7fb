"""Per-principal storage quota and usage records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field

from quota_ledger.core.time import utcnow
from quota_ledger.core.units import DEFAULT_QUOTA_BYTES
from quota_ledger.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class UserQuota(QueryModel, table=True):
    """Current quota limit and used bytes for one principal."""

    __tablename__ = "user_quotas"  # pyright: ignore[reportAssignmentType]

    principal_id: str = Field(primary_key=True, max_length=256)
    quota_limit: int = Field(default=DEFAULT_QUOTA_BYTES, sa_type=BigInteger)
    used_storage: int = Field(default=0, sa_type=BigInteger)
    last_updated: int = Field(default=0, sa_type=BigInteger)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
