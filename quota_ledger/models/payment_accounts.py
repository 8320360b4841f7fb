"""Balances for the account-backed payment rail."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field

from quota_ledger.core.time import utcnow
from quota_ledger.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class PaymentAccount(QueryModel, table=True):
    """Spendable balance, in payment micro-units, for one principal."""

    __tablename__ = "payment_accounts"  # pyright: ignore[reportAssignmentType]

    principal_id: str = Field(primary_key=True, max_length=256)
    balance: int = Field(default=0, sa_type=BigInteger)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
