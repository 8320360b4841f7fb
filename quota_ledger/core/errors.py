"""Error taxonomy for quota ledger operations.

Every rejection raised by the ledger, catalog, orchestrator, and admin
services derives from :class:`QuotaLedgerError`. The transactional facade
rolls back on any of them, so a raised error always means zero state change.
"""

from __future__ import annotations


class QuotaLedgerError(RuntimeError):
    """Base class for rejected quota ledger operations."""

    code = "quota_ledger_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail or self.code
        super().__init__(self.detail)


class Unauthorized(QuotaLedgerError):
    """Raised when a non-owner caller invokes a privileged operation."""

    code = "unauthorized"


class QuotaExceeded(QuotaLedgerError):
    """Raised when an upload would push usage past the quota limit."""

    code = "quota_exceeded"


class InsufficientPayment(QuotaLedgerError):
    """Raised when the payment rail declines a transfer."""

    code = "insufficient_payment"


class UserNotFound(QuotaLedgerError):
    """Raised when an operation requires an existing quota record."""

    code = "user_not_found"


class InvalidAmount(QuotaLedgerError):
    """Raised for zero, negative, overflowing, or out-of-bounds amounts."""

    code = "invalid_amount"


class ArithmeticOverflow(InvalidAmount):
    """Raised by the arithmetic guard when a result would wrap around."""

    code = "arithmetic_overflow"


class PackageNotFound(InvalidAmount):
    """Raised when a quota package id is unknown."""

    code = "package_not_found"
