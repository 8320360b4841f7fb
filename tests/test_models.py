# ruff: noqa: S101
from __future__ import annotations

from datetime import UTC

import pytest

from quota_ledger.core.time import utcnow
from quota_ledger.models import LedgerState, PaymentAccount, QuotaPackage, UserQuota


def test_utcnow_is_timezone_aware() -> None:
    assert utcnow().tzinfo is UTC


@pytest.mark.parametrize("model", [LedgerState, PaymentAccount, QuotaPackage, UserQuota])
def test_timestamp_columns_store_timezone(model: type) -> None:
    columns = [c for c in model.__table__.columns if c.name in {"created_at", "updated_at"}]
    assert columns
    assert all(column.type.timezone is True for column in columns)
