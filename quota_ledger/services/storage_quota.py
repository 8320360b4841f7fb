"""Transactional entry points for the storage quota ledger.

Each public method runs in its own session and transaction: the caller sees
either a committed success or a raised :class:`QuotaLedgerError` with no
state change.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel.ext.asyncio.session import AsyncSession

from quota_ledger.core.config import settings
from quota_ledger.core.errors import QuotaLedgerError
from quota_ledger.core.logging import get_logger
from quota_ledger.db.session import build_session_maker, create_schema
from quota_ledger.models.quota_packages import QuotaPackage
from quota_ledger.schemas.ledger import LedgerSummaryRead, UpgradeReceipt, UserStorageRead
from quota_ledger.schemas.quota_packages import QuotaPackageRead
from quota_ledger.services.admin import AdminControl
from quota_ledger.services.catalog import PackageCatalog
from quota_ledger.services.ledger import HeightSource, QuotaLedger
from quota_ledger.services.payments import AccountPaymentRail, PaymentRail, TransferResult
from quota_ledger.services.upgrades import UpgradeOrchestrator

logger = get_logger(__name__)

PaymentRailFactory = Callable[[AsyncSession], PaymentRail]


@dataclass(frozen=True)
class _UnitOfWork:
    session: AsyncSession
    ledger: QuotaLedger
    catalog: PackageCatalog
    rail: PaymentRail
    admin: AdminControl
    upgrades: UpgradeOrchestrator


def _as_package_read(row: QuotaPackage) -> QuotaPackageRead:
    return QuotaPackageRead(
        id=row.id,
        additional_gb=row.additional_gb,
        additional_bytes=row.additional_bytes,
        price=row.price,
        active=row.active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class StorageQuotaService:
    """Callable surface of the quota ledger, one transaction per call."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        owner_principal: str | None = None,
        custody_principal: str | None = None,
        default_price_per_gb: int | None = None,
        height_source: HeightSource | None = None,
        rail_factory: PaymentRailFactory | None = None,
    ) -> None:
        self._engine = engine
        self._session_maker = build_session_maker(engine)
        self._owner_principal = (
            owner_principal if owner_principal is not None else settings.owner_principal
        )
        self._custody_principal = custody_principal or settings.custody_principal
        self._default_price_per_gb = (
            default_price_per_gb
            if default_price_per_gb is not None
            else settings.default_price_per_gb
        )
        self._height_source = height_source
        self._rail_factory: PaymentRailFactory = rail_factory or AccountPaymentRail

    @property
    def custody_principal(self) -> str:
        return self._custody_principal

    def _build(self, session: AsyncSession) -> _UnitOfWork:
        ledger = QuotaLedger(
            session,
            height_source=self._height_source,
            default_price_per_gb=self._default_price_per_gb,
        )
        catalog = PackageCatalog(session)
        rail = self._rail_factory(session)
        admin = AdminControl(
            owner_principal=self._owner_principal,
            ledger=ledger,
            catalog=catalog,
            rail=rail,
            custody_principal=self._custody_principal,
        )
        upgrades = UpgradeOrchestrator(
            ledger=ledger,
            catalog=catalog,
            rail=rail,
            custody_principal=self._custody_principal,
        )
        return _UnitOfWork(
            session=session,
            ledger=ledger,
            catalog=catalog,
            rail=rail,
            admin=admin,
            upgrades=upgrades,
        )

    @asynccontextmanager
    async def _transaction(
        self,
        operation: str,
        *,
        caller: str | None = None,
    ) -> AsyncIterator[_UnitOfWork]:
        try:
            async with self._session_maker() as session, session.begin():
                yield self._build(session)
        except QuotaLedgerError as exc:
            logger.info(
                "quota.service.rejected",
                extra={
                    "operation": operation,
                    "caller": caller,
                    "code": exc.code,
                    "detail": exc.detail,
                },
            )
            raise

    # Bootstrapping

    async def bootstrap(self, *, create_tables: bool | None = None) -> LedgerSummaryRead:
        """Create the schema (when enabled) and the ledger state row."""
        should_create = settings.db_auto_create if create_tables is None else create_tables
        if should_create:
            await create_schema(self._engine)
        async with self._transaction("bootstrap") as uow:
            await uow.ledger.state(create=True)
        return await self.get_ledger_summary()

    # Ledger operations

    async def initialize_user(self, caller: str) -> bool:
        async with self._transaction("initialize_user", caller=caller) as uow:
            return await uow.ledger.initialize(caller)

    async def record_upload(self, caller: str, size: int) -> UserStorageRead:
        async with self._transaction("record_upload", caller=caller) as uow:
            await uow.ledger.record_upload(caller, size)
            return await uow.ledger.snapshot(caller)

    async def record_deletion(self, caller: str, size: int) -> UserStorageRead:
        async with self._transaction("record_deletion", caller=caller) as uow:
            await uow.ledger.record_deletion(caller, size)
            return await uow.ledger.snapshot(caller)

    # Paid upgrades

    async def upgrade_quota(self, caller: str, additional_gb: int) -> UpgradeReceipt:
        async with self._transaction("upgrade_quota", caller=caller) as uow:
            return await uow.upgrades.upgrade_quota(caller, additional_gb)

    async def purchase_quota_package(self, caller: str, package_id: int) -> UpgradeReceipt:
        async with self._transaction("purchase_quota_package", caller=caller) as uow:
            return await uow.upgrades.purchase_package(caller, package_id)

    # Administrative operations

    async def admin_set_user_quota(
        self,
        caller: str,
        principal_id: str,
        new_quota: int,
    ) -> UserStorageRead:
        async with self._transaction("admin_set_user_quota", caller=caller) as uow:
            await uow.admin.set_user_quota(caller, principal_id, new_quota)
            return await uow.ledger.snapshot(principal_id)

    async def admin_update_price_per_gb(self, caller: str, new_price: int) -> int:
        async with self._transaction("admin_update_price_per_gb", caller=caller) as uow:
            return await uow.admin.update_price_per_gb(caller, new_price)

    async def admin_create_quota_package(
        self,
        caller: str,
        package_id: int,
        additional_gb: int,
        price: int,
    ) -> QuotaPackageRead:
        async with self._transaction("admin_create_quota_package", caller=caller) as uow:
            package = await uow.admin.create_package(caller, package_id, additional_gb, price)
            await uow.session.flush()
            return _as_package_read(package)

    async def admin_deactivate_quota_package(
        self,
        caller: str,
        package_id: int,
    ) -> QuotaPackageRead:
        async with self._transaction("admin_deactivate_quota_package", caller=caller) as uow:
            package = await uow.admin.deactivate_package(caller, package_id)
            await uow.session.flush()
            return _as_package_read(package)

    async def admin_withdraw(self, caller: str, amount: int, recipient: str) -> TransferResult:
        async with self._transaction("admin_withdraw", caller=caller) as uow:
            return await uow.admin.withdraw(caller, amount, recipient)

    # Payment accounts

    async def deposit(self, principal_id: str, amount: int) -> int:
        """Fund a payment account on the account-backed rail."""
        async with self._transaction("deposit", caller=principal_id) as uow:
            if not isinstance(uow.rail, AccountPaymentRail):
                msg = "deposit is only available on the account-backed payment rail"
                raise TypeError(msg)
            return await uow.rail.deposit(principal_id, amount)

    async def get_payment_balance(self, principal_id: str) -> int:
        async with self._transaction("get_payment_balance") as uow:
            return await uow.rail.balance_of(principal_id)

    async def get_custody_balance(self) -> int:
        return await self.get_payment_balance(self._custody_principal)

    # Read-only queries

    async def get_user_storage(self, principal_id: str) -> UserStorageRead | None:
        async with self._transaction("get_user_storage") as uow:
            return await uow.ledger.find(principal_id)

    async def get_user_quota(self, principal_id: str) -> int:
        async with self._transaction("get_user_quota") as uow:
            return await uow.ledger.get_quota(principal_id)

    async def get_used_storage(self, principal_id: str) -> int:
        async with self._transaction("get_used_storage") as uow:
            return await uow.ledger.get_used(principal_id)

    async def get_available_storage(self, principal_id: str) -> int:
        async with self._transaction("get_available_storage") as uow:
            return await uow.ledger.get_available(principal_id)

    async def can_upload(self, principal_id: str, size: int) -> bool:
        async with self._transaction("can_upload") as uow:
            return await uow.ledger.can_upload(principal_id, size)

    async def get_quota_package(self, package_id: int) -> QuotaPackageRead | None:
        async with self._transaction("get_quota_package") as uow:
            package = await uow.catalog.get_package(package_id)
            return _as_package_read(package) if package is not None else None

    async def list_quota_packages(self, *, active_only: bool = False) -> list[QuotaPackageRead]:
        async with self._transaction("list_quota_packages") as uow:
            rows = await uow.catalog.list_packages(active_only=active_only)
            return [_as_package_read(row) for row in rows]

    async def get_total_users(self) -> int:
        async with self._transaction("get_total_users") as uow:
            return await uow.ledger.total_users()

    async def get_price_per_gb(self) -> int:
        async with self._transaction("get_price_per_gb") as uow:
            return await uow.ledger.price_per_gb()

    async def list_users(self, *, offset: int = 0, limit: int = 100) -> list[UserStorageRead]:
        async with self._transaction("list_users") as uow:
            return await uow.ledger.list_records(offset=offset, limit=limit)

    async def get_ledger_summary(self) -> LedgerSummaryRead:
        async with self._transaction("get_ledger_summary") as uow:
            state = await uow.ledger.state()
            custody_balance = await uow.rail.balance_of(self._custody_principal)
            return LedgerSummaryRead(
                total_users=state.total_users,
                height=state.height,
                price_per_gb=state.price_per_gb,
                custody_principal=self._custody_principal,
                custody_balance=custody_balance,
                updated_at=state.updated_at,
            )
