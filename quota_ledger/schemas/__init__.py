"""Read models returned by the quota ledger surface."""

from quota_ledger.schemas.ledger import LedgerSummaryRead, UpgradeReceipt, UserStorageRead
from quota_ledger.schemas.quota_packages import QuotaPackageRead

__all__ = [
    "LedgerSummaryRead",
    "QuotaPackageRead",
    "UpgradeReceipt",
    "UserStorageRead",
]
