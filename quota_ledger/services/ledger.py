"""Authoritative per-principal quota ledger.

All mutations go through :meth:`QuotaLedger.ensure_initialized`, which lazily
creates a record at the default quota and counts the principal once in
``LedgerState.total_users``. Checks run before the first write; the one
exception is re-checking an upload against a record created concurrently,
which relies on the caller's transaction rolling back.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlmodel import col

from quota_ledger.core.config import settings
from quota_ledger.core.errors import InvalidAmount, QuotaExceeded, UserNotFound
from quota_ledger.core.logging import get_logger
from quota_ledger.core.time import utcnow
from quota_ledger.core.units import (
    DEFAULT_QUOTA_BYTES,
    MAX_FILE_SIZE_BYTES,
    MAX_PRICE_PER_GB,
    MAX_QUOTA_BYTES,
    MAX_STORED_INTEGER,
    UINT128_MAX,
    add_checked,
    ensure_at_most,
    ensure_in_range,
    sub_saturating,
)
from quota_ledger.models.ledger_state import LedgerState
from quota_ledger.models.user_quotas import UserQuota
from quota_ledger.schemas.ledger import UserStorageRead
from quota_ledger.services.base import LedgerDBService, load_ledger_state

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

MAX_PAGE_SIZE = 1000

HeightSource = Callable[[], int]


def _check_upload(principal_id: str, size: int, *, used: int, limit: int) -> None:
    new_used = add_checked(used, size)
    if new_used > limit:
        msg = (
            f"upload of {size} bytes exceeds quota for '{principal_id}' "
            f"({new_used} requested, {limit} max)"
        )
        raise QuotaExceeded(msg)


def _as_storage_read(
    principal_id: str,
    record: UserQuota | None,
) -> UserStorageRead:
    if record is None:
        return UserStorageRead(
            principal_id=principal_id,
            quota_limit=DEFAULT_QUOTA_BYTES,
            used_storage=0,
            available_storage=DEFAULT_QUOTA_BYTES,
            last_updated=0,
            exists=False,
        )
    return UserStorageRead(
        principal_id=record.principal_id,
        quota_limit=record.quota_limit,
        used_storage=record.used_storage,
        available_storage=sub_saturating(record.quota_limit, record.used_storage),
        last_updated=record.last_updated,
        exists=True,
    )


class QuotaLedger(LedgerDBService):
    """Read and mutate user quota records inside one session."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        height_source: HeightSource | None = None,
        default_price_per_gb: int | None = None,
    ) -> None:
        super().__init__(session)
        self._height_source = height_source
        self._default_price_per_gb = (
            default_price_per_gb
            if default_price_per_gb is not None
            else settings.default_price_per_gb
        )
        self._stamp_value: int | None = None

    async def _record(self, principal_id: str, *, for_update: bool = False) -> UserQuota | None:
        query = UserQuota.objects.by_id(principal_id)
        if for_update:
            query = query.for_update()
        return await query.first(self.session)

    async def _state(self, *, for_update: bool = False) -> LedgerState:
        return await load_ledger_state(
            self.session,
            default_price_per_gb=self._default_price_per_gb,
            for_update=for_update,
        )

    async def _stamp(self) -> int:
        # One height per service instance, i.e. per transaction.
        if self._stamp_value is not None:
            return self._stamp_value
        state = await self._state(for_update=True)
        if self._height_source is not None:
            height = max(state.height, int(self._height_source()))
        else:
            height = add_checked(state.height, 1)
        state.height = ensure_at_most(height, MAX_STORED_INTEGER, field_name="height")
        state.updated_at = utcnow()
        self.session.add(state)
        self._stamp_value = height
        return height

    async def _touch(self, record: UserQuota) -> None:
        record.last_updated = max(record.last_updated, await self._stamp())
        record.updated_at = utcnow()
        self.session.add(record)

    async def ensure_initialized(self, principal_id: str) -> tuple[UserQuota, bool]:
        """Return the principal's record, creating it at the default quota if absent."""
        record = await self._record(principal_id, for_update=True)
        if record is not None:
            return record, False
        # Creators serialize on the state row; re-read once it is held.
        state = await self._state(for_update=True)
        record = await self._record(principal_id, for_update=True)
        if record is not None:
            return record, False
        state.total_users = add_checked(state.total_users, 1)
        self.session.add(state)
        now = utcnow()
        record = UserQuota(
            principal_id=principal_id,
            quota_limit=DEFAULT_QUOTA_BYTES,
            used_storage=0,
            last_updated=await self._stamp(),
            created_at=now,
            updated_at=now,
        )
        self.session.add(record)
        logger.info(
            "quota.ledger.user_created",
            extra={"principal_id": principal_id, "total_users": state.total_users},
        )
        return record, True

    async def initialize(self, principal_id: str) -> bool:
        """Create a default record; return whether one was created."""
        _record, created = await self.ensure_initialized(principal_id)
        return created

    async def snapshot(self, principal_id: str) -> UserStorageRead:
        """Return the stored record, or the default virtual record."""
        return _as_storage_read(principal_id, await self._record(principal_id))

    async def find(self, principal_id: str) -> UserStorageRead | None:
        record = await self._record(principal_id)
        if record is None:
            return None
        return _as_storage_read(principal_id, record)

    async def get_quota(self, principal_id: str) -> int:
        return (await self.snapshot(principal_id)).quota_limit

    async def get_used(self, principal_id: str) -> int:
        return (await self.snapshot(principal_id)).used_storage

    async def get_available(self, principal_id: str) -> int:
        return (await self.snapshot(principal_id)).available_storage

    async def can_upload(self, principal_id: str, size: int) -> bool:
        ensure_at_most(size, UINT128_MAX, field_name="size")
        return await self.get_available(principal_id) >= size

    async def record_upload(self, principal_id: str, size: int) -> UserQuota:
        """Add ``size`` bytes to the principal's usage if it fits the quota."""
        ensure_in_range(size, MAX_FILE_SIZE_BYTES, field_name="size")
        existing = await self._record(principal_id, for_update=True)
        if existing is None:
            _check_upload(principal_id, size, used=0, limit=DEFAULT_QUOTA_BYTES)
        else:
            _check_upload(
                principal_id,
                size,
                used=existing.used_storage,
                limit=existing.quota_limit,
            )

        record, created = await self.ensure_initialized(principal_id)
        if existing is None and not created:
            # Created concurrently; check against the committed usage.
            _check_upload(principal_id, size, used=record.used_storage, limit=record.quota_limit)
        record.used_storage = add_checked(record.used_storage, size)
        await self._touch(record)
        logger.info(
            "quota.ledger.upload_recorded",
            extra={
                "principal_id": principal_id,
                "size": size,
                "used_storage": record.used_storage,
                "quota_limit": record.quota_limit,
            },
        )
        return record

    async def record_deletion(self, principal_id: str, size: int) -> UserQuota:
        """Subtract ``size`` bytes from usage, clamping at zero."""
        ensure_in_range(size, MAX_FILE_SIZE_BYTES, field_name="size")
        record = await self._record(principal_id, for_update=True)
        if record is None:
            msg = f"no quota record for '{principal_id}'"
            raise UserNotFound(msg)
        record.used_storage = sub_saturating(record.used_storage, size)
        await self._touch(record)
        logger.info(
            "quota.ledger.deletion_recorded",
            extra={
                "principal_id": principal_id,
                "size": size,
                "used_storage": record.used_storage,
            },
        )
        return record

    async def set_quota(self, principal_id: str, new_quota: int) -> UserQuota:
        """Overwrite the quota limit, keeping current usage.

        A limit below current usage is accepted; uploads are then rejected
        until deletions bring usage back under the new limit.
        """
        ensure_in_range(new_quota, MAX_QUOTA_BYTES, field_name="new_quota")
        record, _created = await self.ensure_initialized(principal_id)
        record.quota_limit = new_quota
        await self._touch(record)
        logger.info(
            "quota.ledger.quota_set",
            extra={
                "principal_id": principal_id,
                "quota_limit": new_quota,
                "used_storage": record.used_storage,
            },
        )
        return record

    async def preview_grant(self, principal_id: str, additional_bytes: int) -> int:
        """Return the limit a grant would produce, without writing anything."""
        ensure_in_range(additional_bytes, MAX_QUOTA_BYTES, field_name="additional_bytes")
        current = await self.get_quota(principal_id)
        new_limit = add_checked(current, additional_bytes)
        return ensure_at_most(new_limit, MAX_QUOTA_BYTES, field_name="quota_limit")

    async def grant_bytes(self, principal_id: str, additional_bytes: int) -> UserQuota:
        """Raise the principal's limit by ``additional_bytes``. Never charges."""
        await self.preview_grant(principal_id, additional_bytes)
        record, _created = await self.ensure_initialized(principal_id)
        new_limit = ensure_at_most(
            add_checked(record.quota_limit, additional_bytes),
            MAX_QUOTA_BYTES,
            field_name="quota_limit",
        )
        record.quota_limit = new_limit
        await self._touch(record)
        logger.info(
            "quota.ledger.bytes_granted",
            extra={
                "principal_id": principal_id,
                "additional_bytes": additional_bytes,
                "quota_limit": new_limit,
            },
        )
        return record

    async def total_users(self) -> int:
        return (await self._state()).total_users

    async def height(self) -> int:
        return (await self._state()).height

    async def price_per_gb(self) -> int:
        return (await self._state()).price_per_gb

    async def set_price_per_gb(self, new_price: int) -> int:
        ensure_in_range(new_price, MAX_PRICE_PER_GB, field_name="price_per_gb")
        state = await self._state(for_update=True)
        previous = state.price_per_gb
        state.price_per_gb = new_price
        state.updated_at = utcnow()
        self.session.add(state)
        logger.info(
            "quota.ledger.price_updated",
            extra={"previous_price_per_gb": previous, "price_per_gb": new_price},
        )
        return new_price

    async def state(self, *, create: bool = False) -> LedgerState:
        """Return global counters; ``create`` persists the row on a fresh database."""
        return await self._state(for_update=create)

    async def list_records(self, *, offset: int = 0, limit: int = 100) -> list[UserStorageRead]:
        """Page through stored records ordered by principal id."""
        if offset < 0:
            raise InvalidAmount("offset must not be negative")
        ensure_in_range(limit, MAX_PAGE_SIZE, field_name="limit")
        rows = await (
            UserQuota.objects.all_rows()
            .order_by(col(UserQuota.principal_id).asc())
            .offset(offset)
            .limit(limit)
            .all(self.session)
        )
        return [_as_storage_read(row.principal_id, row) for row in rows]
