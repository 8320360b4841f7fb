"""Owner-gated administrative operations."""

from __future__ import annotations

from quota_ledger.core.errors import InsufficientPayment, Unauthorized
from quota_ledger.core.logging import get_logger
from quota_ledger.core.units import ensure_positive
from quota_ledger.models.quota_packages import QuotaPackage
from quota_ledger.models.user_quotas import UserQuota
from quota_ledger.services.catalog import PackageCatalog
from quota_ledger.services.ledger import QuotaLedger
from quota_ledger.services.payments import PaymentRail, TransferResult

logger = get_logger(__name__)


class AdminControl:
    """Privileged quota, catalog, pricing, and custody operations."""

    def __init__(
        self,
        *,
        owner_principal: str,
        ledger: QuotaLedger,
        catalog: PackageCatalog,
        rail: PaymentRail,
        custody_principal: str,
    ) -> None:
        self._owner_principal = owner_principal.strip()
        self._ledger = ledger
        self._catalog = catalog
        self._rail = rail
        self._custody_principal = custody_principal

    def require_owner(self, caller: str) -> None:
        """Raise :class:`Unauthorized` unless ``caller`` is the configured owner."""
        if not self._owner_principal or caller != self._owner_principal:
            msg = f"'{caller}' is not the ledger owner"
            raise Unauthorized(msg)

    async def set_user_quota(self, caller: str, principal_id: str, new_quota: int) -> UserQuota:
        self.require_owner(caller)
        return await self._ledger.set_quota(principal_id, new_quota)

    async def create_package(
        self,
        caller: str,
        package_id: int,
        additional_gb: int,
        price: int,
    ) -> QuotaPackage:
        self.require_owner(caller)
        return await self._catalog.create_package(package_id, additional_gb, price)

    async def deactivate_package(self, caller: str, package_id: int) -> QuotaPackage:
        self.require_owner(caller)
        return await self._catalog.deactivate_package(package_id)

    async def update_price_per_gb(self, caller: str, new_price: int) -> int:
        self.require_owner(caller)
        return await self._ledger.set_price_per_gb(new_price)

    async def withdraw(self, caller: str, amount: int, recipient: str) -> TransferResult:
        """Move ``amount`` out of the custody balance to ``recipient``."""
        self.require_owner(caller)
        ensure_positive(amount, field_name="amount")
        result = await self._rail.transfer(
            amount=amount,
            sender=self._custody_principal,
            recipient=recipient,
        )
        if not result.ok:
            msg = f"withdrawal of {amount} declined: {result.reason}"
            raise InsufficientPayment(msg)
        logger.info(
            "quota.admin.withdrawal",
            extra={"recipient": recipient, "amount": amount},
        )
        return result
