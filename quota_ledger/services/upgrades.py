"""Pay-then-upgrade orchestration for direct upgrades and package purchases.

Both entry points validate the grant first, charge exactly once, and only
then raise the limit through :meth:`QuotaLedger.grant_bytes`, which never
charges. When the rail cannot share the caller's transaction, a failed
grant triggers a refund transfer before the error propagates.
"""

from __future__ import annotations

from quota_ledger.core.errors import InsufficientPayment, InvalidAmount, PackageNotFound
from quota_ledger.core.logging import get_logger
from quota_ledger.core.units import gb_to_bytes, mul_checked
from quota_ledger.schemas.ledger import UpgradeReceipt
from quota_ledger.services.catalog import PackageCatalog
from quota_ledger.services.ledger import QuotaLedger
from quota_ledger.services.payments import PaymentRail

logger = get_logger(__name__)


class UpgradeOrchestrator:
    """Couple a payment transfer with a quota grant as one unit."""

    def __init__(
        self,
        *,
        ledger: QuotaLedger,
        catalog: PackageCatalog,
        rail: PaymentRail,
        custody_principal: str,
    ) -> None:
        self._ledger = ledger
        self._catalog = catalog
        self._rail = rail
        self._custody_principal = custody_principal

    async def upgrade_quota(self, principal_id: str, additional_gb: int) -> UpgradeReceipt:
        """Charge ``additional_gb * price_per_gb`` and grant the bytes."""
        additional_bytes = gb_to_bytes(additional_gb)
        price_per_gb = await self._ledger.price_per_gb()
        cost = mul_checked(additional_gb, price_per_gb)
        return await self._charge_and_grant(
            principal_id,
            additional_gb=additional_gb,
            additional_bytes=additional_bytes,
            cost=cost,
        )

    async def purchase_package(self, principal_id: str, package_id: int) -> UpgradeReceipt:
        """Charge the package price and grant the package bytes."""
        package = await self._catalog.get_package(package_id)
        if package is None:
            msg = f"quota package {package_id} not found"
            raise PackageNotFound(msg)
        if not package.active:
            msg = f"quota package {package_id} is not active"
            raise InvalidAmount(msg)
        return await self._charge_and_grant(
            principal_id,
            additional_gb=package.additional_gb,
            additional_bytes=gb_to_bytes(package.additional_gb),
            cost=package.price,
            package_id=package.id,
        )

    async def _charge_and_grant(
        self,
        principal_id: str,
        *,
        additional_gb: int,
        additional_bytes: int,
        cost: int,
        package_id: int | None = None,
    ) -> UpgradeReceipt:
        await self._ledger.preview_grant(principal_id, additional_bytes)

        result = await self._rail.transfer(
            amount=cost,
            sender=principal_id,
            recipient=self._custody_principal,
        )
        if not result.ok:
            msg = f"payment of {cost} from '{principal_id}' declined: {result.reason}"
            raise InsufficientPayment(msg)

        try:
            record = await self._ledger.grant_bytes(principal_id, additional_bytes)
        except Exception:
            if not self._rail.transactional:
                await self._refund(principal_id, cost)
            raise

        logger.info(
            "quota.upgrade.completed",
            extra={
                "principal_id": principal_id,
                "additional_gb": additional_gb,
                "amount_charged": cost,
                "quota_limit": record.quota_limit,
                "package_id": package_id,
            },
        )
        return UpgradeReceipt(
            principal_id=principal_id,
            additional_gb=additional_gb,
            additional_bytes=additional_bytes,
            amount_charged=cost,
            quota_limit=record.quota_limit,
            package_id=package_id,
        )

    async def _refund(self, principal_id: str, amount: int) -> None:
        refund = await self._rail.transfer(
            amount=amount,
            sender=self._custody_principal,
            recipient=principal_id,
        )
        if refund.ok:
            logger.warning(
                "quota.upgrade.refund_issued",
                extra={"principal_id": principal_id, "amount": amount},
            )
            return
        logger.error(
            "quota.upgrade.refund_failed",
            extra={"principal_id": principal_id, "amount": amount, "reason": refund.reason},
        )
