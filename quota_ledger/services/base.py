"""Shared session-bound service base."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from quota_ledger.core.time import utcnow
from quota_ledger.models.ledger_state import LEDGER_STATE_ID, LedgerState

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


class LedgerDBService:
    """Base for services that operate inside a caller-owned session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session


def _default_state(default_price_per_gb: int) -> LedgerState:
    return LedgerState(
        id=LEDGER_STATE_ID,
        total_users=0,
        height=0,
        price_per_gb=default_price_per_gb,
        updated_at=utcnow(),
    )


async def load_ledger_state(
    session: AsyncSession,
    *,
    default_price_per_gb: int,
    for_update: bool = False,
) -> LedgerState:
    """Return the singleton ledger state row.

    Reads of a fresh database get an unsaved default row. With
    ``for_update`` the row is created on first use and locked.
    """
    query = LedgerState.objects.by_id(LEDGER_STATE_ID)
    if for_update:
        query = query.for_update()
    state = await query.first(session)
    if state is not None:
        return state
    state = _default_state(default_price_per_gb)
    if not for_update:
        return state
    try:
        async with session.begin_nested():
            session.add(state)
    except IntegrityError:
        # Another transaction created the row first.
        state = await query.first(session)
        if state is None:
            raise
    return state
