from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from quota_ledger.db.session import build_engine, create_schema
from quota_ledger.services.storage_quota import StorageQuotaService

OWNER = "owner-principal"
CUSTODY = "custody-principal"
PRICE_PER_GB = 1_000_000


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """File-backed database; each session gets its own connection."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


def _service(engine: AsyncEngine) -> StorageQuotaService:
    return StorageQuotaService(
        engine,
        owner_principal=OWNER,
        custody_principal=CUSTODY,
        default_price_per_gb=PRICE_PER_GB,
    )


@pytest_asyncio.fixture
async def service(engine: AsyncEngine) -> StorageQuotaService:
    quota_service = _service(engine)
    await quota_service.bootstrap(create_tables=False)
    return quota_service


@pytest_asyncio.fixture
async def file_service(file_engine: AsyncEngine) -> StorageQuotaService:
    quota_service = _service(file_engine)
    await quota_service.bootstrap(create_tables=False)
    return quota_service
