# ruff: noqa: S101
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from quota_ledger.core.errors import (
    InsufficientPayment,
    InvalidAmount,
    PackageNotFound,
    QuotaExceeded,
    Unauthorized,
)
from quota_ledger.core.units import (
    BYTES_PER_GB,
    BYTES_PER_MB,
    MAX_PACKAGE_PRICE,
    MAX_PRICE_PER_GB,
    MAX_QUOTA_BYTES,
    MAX_STORED_INTEGER,
)
from quota_ledger.services.storage_quota import StorageQuotaService

OWNER = "owner-principal"
PRICE_PER_GB = 1_000_000


@pytest.mark.asyncio
async def test_non_owner_cannot_set_quota(service: StorageQuotaService) -> None:
    with pytest.raises(Unauthorized):
        await service.admin_set_user_quota("mallory", "alice", 10 * BYTES_PER_MB)
    assert await service.get_user_storage("alice") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("new_quota", [0, MAX_QUOTA_BYTES + 1])
async def test_owner_set_quota_rejects_out_of_range_values(
    service: StorageQuotaService,
    new_quota: int,
) -> None:
    with pytest.raises(InvalidAmount):
        await service.admin_set_user_quota(OWNER, "alice", new_quota)
    assert await service.get_total_users() == 0


@pytest.mark.asyncio
async def test_owner_identity_is_injected_per_service(engine: AsyncEngine) -> None:
    first = StorageQuotaService(engine, owner_principal="owner-a")
    second = StorageQuotaService(engine, owner_principal="owner-b")

    await first.admin_set_user_quota("owner-a", "alice", 5 * BYTES_PER_MB)
    with pytest.raises(Unauthorized):
        await first.admin_set_user_quota("owner-b", "alice", 6 * BYTES_PER_MB)
    await second.admin_set_user_quota("owner-b", "alice", 7 * BYTES_PER_MB)

    assert await first.get_user_quota("alice") == 7 * BYTES_PER_MB


@pytest.mark.asyncio
async def test_empty_owner_rejects_every_admin_call(engine: AsyncEngine) -> None:
    service = StorageQuotaService(engine, owner_principal="")
    with pytest.raises(Unauthorized):
        await service.admin_update_price_per_gb("", 2 * PRICE_PER_GB)


@pytest.mark.asyncio
async def test_downward_resize_keeps_usage_and_blocks_uploads(service: StorageQuotaService) -> None:
    await service.record_upload("alice", 40 * BYTES_PER_MB)

    result = await service.admin_set_user_quota(OWNER, "alice", 10 * BYTES_PER_MB)

    assert result.quota_limit == 10 * BYTES_PER_MB
    assert result.used_storage == 40 * BYTES_PER_MB
    assert result.available_storage == 0
    with pytest.raises(QuotaExceeded):
        await service.record_upload("alice", 1)

    await service.record_deletion("alice", 35 * BYTES_PER_MB)
    uploaded = await service.record_upload("alice", 5 * BYTES_PER_MB)
    assert uploaded.used_storage == 10 * BYTES_PER_MB


@pytest.mark.asyncio
async def test_create_package_overwrites_existing_definition(service: StorageQuotaService) -> None:
    first = await service.admin_create_quota_package(OWNER, 7, 10, 5 * PRICE_PER_GB)
    await service.admin_deactivate_quota_package(OWNER, 7)
    second = await service.admin_create_quota_package(OWNER, 7, 20, 8 * PRICE_PER_GB)

    assert first.additional_bytes == 10 * BYTES_PER_GB
    assert second.additional_gb == 20
    assert second.additional_bytes == 20 * BYTES_PER_GB
    assert second.price == 8 * PRICE_PER_GB
    assert second.active is True

    stored = await service.get_quota_package(7)
    assert stored is not None
    assert stored.model_dump(exclude={"created_at", "updated_at"}) == second.model_dump(
        exclude={"created_at", "updated_at"},
    )
    assert await service.get_quota_package(8) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("additional_gb", "price"),
    [(0, PRICE_PER_GB), (1001, PRICE_PER_GB), (10, 0), (10, MAX_PACKAGE_PRICE + 1)],
)
async def test_create_package_validates_size_and_price(
    service: StorageQuotaService,
    additional_gb: int,
    price: int,
) -> None:
    with pytest.raises(InvalidAmount):
        await service.admin_create_quota_package(OWNER, 1, additional_gb, price)
    assert await service.get_quota_package(1) is None


@pytest.mark.asyncio
async def test_create_package_requires_owner(service: StorageQuotaService) -> None:
    with pytest.raises(Unauthorized):
        await service.admin_create_quota_package("mallory", 1, 10, PRICE_PER_GB)
    with pytest.raises(Unauthorized):
        await service.admin_deactivate_quota_package("mallory", 1)


@pytest.mark.asyncio
async def test_deactivating_missing_package_fails(service: StorageQuotaService) -> None:
    with pytest.raises(PackageNotFound):
        await service.admin_deactivate_quota_package(OWNER, 42)


@pytest.mark.asyncio
async def test_list_packages_filters_inactive(service: StorageQuotaService) -> None:
    await service.admin_create_quota_package(OWNER, 2, 1, PRICE_PER_GB)
    await service.admin_create_quota_package(OWNER, 1, 1, PRICE_PER_GB)
    await service.admin_deactivate_quota_package(OWNER, 2)

    assert [p.id for p in await service.list_quota_packages()] == [1, 2]
    assert [p.id for p in await service.list_quota_packages(active_only=True)] == [1]


@pytest.mark.asyncio
async def test_price_update_is_owner_only_and_bounded(service: StorageQuotaService) -> None:
    with pytest.raises(Unauthorized):
        await service.admin_update_price_per_gb("mallory", 2 * PRICE_PER_GB)
    with pytest.raises(InvalidAmount):
        await service.admin_update_price_per_gb(OWNER, 0)
    with pytest.raises(InvalidAmount):
        await service.admin_update_price_per_gb(OWNER, MAX_PRICE_PER_GB + 1)
    assert await service.get_price_per_gb() == PRICE_PER_GB

    assert await service.admin_update_price_per_gb(OWNER, 2 * PRICE_PER_GB) == 2 * PRICE_PER_GB
    assert await service.get_price_per_gb() == 2 * PRICE_PER_GB


@pytest.mark.asyncio
async def test_withdraw_moves_custody_funds_to_recipient(service: StorageQuotaService) -> None:
    await service.deposit("alice", 5 * PRICE_PER_GB)
    await service.upgrade_quota("alice", 4)

    result = await service.admin_withdraw(OWNER, 3 * PRICE_PER_GB, "treasury")

    assert result.ok is True
    assert await service.get_custody_balance() == PRICE_PER_GB
    assert await service.get_payment_balance("treasury") == 3 * PRICE_PER_GB


@pytest.mark.asyncio
async def test_withdraw_rejections_leave_balances_untouched(service: StorageQuotaService) -> None:
    await service.deposit("alice", 2 * PRICE_PER_GB)
    await service.upgrade_quota("alice", 1)

    with pytest.raises(Unauthorized):
        await service.admin_withdraw("alice", PRICE_PER_GB, "alice")
    with pytest.raises(InvalidAmount):
        await service.admin_withdraw(OWNER, 0, "treasury")
    with pytest.raises(InsufficientPayment):
        await service.admin_withdraw(OWNER, 2 * PRICE_PER_GB, "treasury")

    assert await service.get_custody_balance() == PRICE_PER_GB
    assert await service.get_payment_balance("treasury") == 0


@pytest.mark.asyncio
async def test_ledger_summary_reports_counters(service: StorageQuotaService) -> None:
    await service.deposit("alice", 2 * PRICE_PER_GB)
    await service.upgrade_quota("alice", 2)
    await service.initialize_user("bob")

    summary = await service.get_ledger_summary()

    assert summary.total_users == 2
    assert summary.height == 2
    assert summary.price_per_gb == PRICE_PER_GB
    assert summary.custody_balance == 2 * PRICE_PER_GB


@pytest.mark.asyncio
@pytest.mark.parametrize("package_id", [-1, MAX_STORED_INTEGER + 1])
async def test_out_of_range_package_ids_read_as_missing(
    service: StorageQuotaService,
    package_id: int,
) -> None:
    assert await service.get_quota_package(package_id) is None
    with pytest.raises(PackageNotFound):
        await service.purchase_quota_package("alice", package_id)
    with pytest.raises(InvalidAmount):
        await service.admin_create_quota_package(OWNER, package_id, 1, PRICE_PER_GB)
