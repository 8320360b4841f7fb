"""Singleton row holding global counters and live pricing."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field

from quota_ledger.core.time import utcnow
from quota_ledger.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)

LEDGER_STATE_ID = 1


class LedgerState(QueryModel, table=True):
    """Global ledger counters: user count, logical height, per-GB price."""

    __tablename__ = "ledger_state"  # pyright: ignore[reportAssignmentType]

    id: int = Field(
        default=LEDGER_STATE_ID,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )
    total_users: int = Field(default=0, sa_type=BigInteger)
    height: int = Field(default=0, sa_type=BigInteger)
    price_per_gb: int = Field(sa_type=BigInteger)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
