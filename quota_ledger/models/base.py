"""Shared SQLModel base with a small chainable query manager."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlmodel import SQLModel, select

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound="QueryModel")


class ModelQuery(Generic[ModelT]):
    """Immutable wrapper around a ``select`` statement for one model."""

    def __init__(self, model: type[ModelT], statement: SelectOfScalar[ModelT]) -> None:
        self._model = model
        self._statement = statement

    def _with(self, statement: SelectOfScalar[ModelT]) -> ModelQuery[ModelT]:
        return ModelQuery(self._model, statement)

    def filter_by(self, **filters: Any) -> ModelQuery[ModelT]:
        return self._with(self._statement.filter_by(**filters))

    def order_by(self, *clauses: Any) -> ModelQuery[ModelT]:
        return self._with(self._statement.order_by(*clauses))

    def offset(self, value: int) -> ModelQuery[ModelT]:
        return self._with(self._statement.offset(value))

    def limit(self, value: int) -> ModelQuery[ModelT]:
        return self._with(self._statement.limit(value))

    def for_update(self) -> ModelQuery[ModelT]:
        """Lock matched rows for the rest of the transaction (no-op on SQLite)."""
        return self._with(self._statement.with_for_update())

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self._statement)).first()

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list((await session.exec(self._statement)).all())


class _ModelManager:
    """Descriptor exposing ``Model.objects`` query entry points."""

    def __get__(self, instance: object, owner: type[ModelT]) -> _BoundManager[ModelT]:
        return _BoundManager(owner)


class _BoundManager(Generic[ModelT]):
    def __init__(self, model: type[ModelT]) -> None:
        self._model = model

    def all_rows(self) -> ModelQuery[ModelT]:
        return ModelQuery(self._model, select(self._model))

    def filter_by(self, **filters: Any) -> ModelQuery[ModelT]:
        return self.all_rows().filter_by(**filters)

    def by_id(self, value: Any) -> ModelQuery[ModelT]:
        primary_key = sa_inspect(self._model).primary_key[0]
        statement = select(self._model).where(primary_key == value)
        return ModelQuery(self._model, statement)


class QueryModel(SQLModel):
    """Base for table models; adds the ``objects`` query manager."""

    objects: ClassVar[_ModelManager] = _ModelManager()
