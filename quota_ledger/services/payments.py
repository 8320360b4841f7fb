"""Payment rail contract and the account-backed rail implementation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from quota_ledger.core.logging import get_logger
from quota_ledger.core.time import utcnow
from quota_ledger.core.units import (
    MAX_STORED_INTEGER,
    add_checked,
    ensure_at_most,
    ensure_positive,
)
from quota_ledger.models.payment_accounts import PaymentAccount
from quota_ledger.services.base import LedgerDBService

logger = get_logger(__name__)

INSUFFICIENT_FUNDS = "insufficient_funds"


def _bounded_balance(balance: int, amount: int) -> int:
    return ensure_at_most(add_checked(balance, amount), MAX_STORED_INTEGER, field_name="balance")


@dataclass(frozen=True, slots=True)
class TransferResult:
    """Outcome of a single payment transfer."""

    ok: bool
    amount: int
    sender: str
    recipient: str
    reason: str | None = None


class PaymentRail(Protocol):
    """Debit one principal and credit another, atomically.

    ``transactional`` rails share the caller's database transaction, so a
    later rollback also reverts the transfer. Non-transactional rails need
    an explicit refund transfer when the surrounding operation fails.
    """

    transactional: bool

    async def transfer(self, *, amount: int, sender: str, recipient: str) -> TransferResult: ...

    async def balance_of(self, principal_id: str) -> int: ...


class AccountPaymentRail(LedgerDBService):
    """Payment rail backed by ``payment_accounts`` rows in the caller's session."""

    transactional = True

    async def _account(
        self,
        principal_id: str,
        *,
        for_update: bool = False,
    ) -> PaymentAccount | None:
        query = PaymentAccount.objects.by_id(principal_id)
        if for_update:
            query = query.for_update()
        return await query.first(self.session)

    async def _account_or_new(self, principal_id: str) -> PaymentAccount:
        account = await self._account(principal_id, for_update=True)
        if account is None:
            account = PaymentAccount(principal_id=principal_id, balance=0)
        return account

    async def balance_of(self, principal_id: str) -> int:
        account = await self._account(principal_id)
        return account.balance if account is not None else 0

    async def deposit(self, principal_id: str, amount: int) -> int:
        """Credit ``amount`` to an account from outside the ledger; return the new balance."""
        ensure_positive(amount, field_name="amount")
        account = await self._account_or_new(principal_id)
        account.balance = _bounded_balance(account.balance, amount)
        account.updated_at = utcnow()
        self.session.add(account)
        logger.info(
            "quota.payments.deposit",
            extra={"principal_id": principal_id, "amount": amount, "balance": account.balance},
        )
        return account.balance

    async def transfer(self, *, amount: int, sender: str, recipient: str) -> TransferResult:
        ensure_positive(amount, field_name="amount")
        source = await self._account(sender, for_update=True)
        if source is None or source.balance < amount:
            return TransferResult(
                ok=False,
                amount=amount,
                sender=sender,
                recipient=recipient,
                reason=INSUFFICIENT_FUNDS,
            )
        if sender == recipient:
            return TransferResult(ok=True, amount=amount, sender=sender, recipient=recipient)

        target = await self._account_or_new(recipient)
        target.balance = _bounded_balance(target.balance, amount)
        source.balance -= amount
        now = utcnow()
        source.updated_at = now
        target.updated_at = now
        self.session.add(source)
        self.session.add(target)
        logger.info(
            "quota.payments.transfer",
            extra={"sender": sender, "recipient": recipient, "amount": amount},
        )
        return TransferResult(ok=True, amount=amount, sender=sender, recipient=recipient)
