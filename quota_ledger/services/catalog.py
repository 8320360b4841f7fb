"""Quota package catalog."""

from __future__ import annotations

from sqlmodel import col

from quota_ledger.core.errors import PackageNotFound
from quota_ledger.core.logging import get_logger
from quota_ledger.core.time import utcnow
from quota_ledger.core.units import (
    MAX_PACKAGE_PRICE,
    MAX_STORED_INTEGER,
    ensure_at_most,
    ensure_in_range,
    gb_to_bytes,
)
from quota_ledger.models.quota_packages import QuotaPackage
from quota_ledger.services.base import LedgerDBService

logger = get_logger(__name__)

MAX_PACKAGE_ID = MAX_STORED_INTEGER


class PackageCatalog(LedgerDBService):
    """Create, read, and deactivate quota packages."""

    async def get_package(
        self,
        package_id: int,
        *,
        for_update: bool = False,
    ) -> QuotaPackage | None:
        if isinstance(package_id, bool) or not isinstance(package_id, int):
            return None
        if not 0 <= package_id <= MAX_PACKAGE_ID:
            return None
        query = QuotaPackage.objects.by_id(package_id)
        if for_update:
            query = query.for_update()
        return await query.first(self.session)

    async def create_package(self, package_id: int, additional_gb: int, price: int) -> QuotaPackage:
        """Create or fully replace the package at ``package_id`` as active."""
        ensure_at_most(package_id, MAX_PACKAGE_ID, field_name="package_id")
        additional_bytes = gb_to_bytes(additional_gb)
        ensure_in_range(price, MAX_PACKAGE_PRICE, field_name="price")

        now = utcnow()
        package = await self.get_package(package_id, for_update=True)
        if package is None:
            package = QuotaPackage(id=package_id, created_at=now)
        package.additional_gb = additional_gb
        package.additional_bytes = additional_bytes
        package.price = price
        package.active = True
        package.updated_at = now
        self.session.add(package)
        logger.info(
            "quota.catalog.package_saved",
            extra={
                "package_id": package_id,
                "additional_gb": additional_gb,
                "price": price,
            },
        )
        return package

    async def deactivate_package(self, package_id: int) -> QuotaPackage:
        package = await self.get_package(package_id, for_update=True)
        if package is None:
            msg = f"quota package {package_id} not found"
            raise PackageNotFound(msg)
        package.active = False
        package.updated_at = utcnow()
        self.session.add(package)
        logger.info("quota.catalog.package_deactivated", extra={"package_id": package_id})
        return package

    async def list_packages(self, *, active_only: bool = False) -> list[QuotaPackage]:
        query = QuotaPackage.objects.all_rows()
        if active_only:
            query = query.filter_by(active=True)
        return await query.order_by(col(QuotaPackage.id).asc()).all(self.session)
