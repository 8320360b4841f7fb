"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from quota_ledger.models.ledger_state import LedgerState
from quota_ledger.models.payment_accounts import PaymentAccount
from quota_ledger.models.quota_packages import QuotaPackage
from quota_ledger.models.user_quotas import UserQuota

__all__ = [
    "LedgerState",
    "PaymentAccount",
    "QuotaPackage",
    "UserQuota",
]
