"""Async engine and session factory helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from quota_ledger import models  # noqa: F401  (registers table metadata)
from quota_ledger.core.config import settings
from quota_ledger.core.logging import get_logger

logger = get_logger(__name__)

SessionMaker = async_sessionmaker[AsyncSession]


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock at ``BEGIN``.

    The sqlite3 driver otherwise defers ``BEGIN`` until the first write, so
    reads that feed a later update would run outside the transaction.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for the configured database."""
    engine = create_async_engine(database_url or settings.database_url, future=True)
    if engine.dialect.name == "sqlite":
        _serialize_sqlite_writers(engine)
    return engine


def build_session_maker(engine: AsyncEngine) -> SessionMaker:
    """Create a session factory producing SQLModel async sessions."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema(bind: AsyncEngine) -> None:
    """Create all ledger tables that do not exist yet."""
    async with bind.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("quota.db.schema_created", extra={"url": bind.url.render_as_string()})
