"""SQLAlchemy-backed Store implementation.

Works on the Core tables behind the declarative models so rows move in and
out as plain dicts. Every call runs in its own transaction; a row update
writes all patched columns in one statement.
"""

from collections.abc import Sequence

from sqlalchemy import ColumnElement, Table, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from device_pricing.infra.database import get_session_factory
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Filter, FilterOp, Row
from device_pricing.models import Base
from device_pricing.models.base import new_id

logger = get_logger(__name__)


class SqlStore:
    """Store over the application database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    def _table(self, name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name}") from None

    @staticmethod
    def _clause(table: Table, flt: Filter) -> ColumnElement[bool]:
        column = table.c[flt.column]
        if flt.op is FilterOp.EQ:
            return column == flt.value
        if flt.op is FilterOp.IN:
            return column.in_(list(flt.value))
        if flt.op is FilterOp.IS_NULL:
            return column.is_(None)
        if flt.op is FilterOp.NOT_NULL:
            return column.is_not(None)
        if flt.op is FilterOp.LIKE:
            return column.like(flt.value)
        raise ValueError(f"Unsupported filter op: {flt.op}")

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = ("id",),
        columns: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        tbl = self._table(table)
        stmt = select(*(tbl.c[col] for col in columns)) if columns else select(tbl)
        for flt in filters:
            stmt = stmt.where(self._clause(tbl, flt))
        stmt = stmt.order_by(*(tbl.c[col] for col in order_by))
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def upsert(self, table: str, row: Row) -> Row:
        tbl = self._table(table)
        values = dict(row)
        values["id"] = str(values.get("id") or new_id())

        async with self._session_factory.begin() as session:
            exists = await session.scalar(select(tbl.c.id).where(tbl.c.id == values["id"]))
            if exists is None:
                await session.execute(insert(tbl).values(**values))
            else:
                patch = {k: v for k, v in values.items() if k != "id"}
                if patch:
                    await session.execute(
                        update(tbl).where(tbl.c.id == values["id"]).values(**patch)
                    )
            result = await session.execute(select(tbl).where(tbl.c.id == values["id"]))
            return dict(result.mappings().one())

    async def update_batch(self, table: str, ids: Sequence[str], patch: Row) -> int:
        if not ids or not patch:
            return 0
        tbl = self._table(table)
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(tbl).where(tbl.c.id.in_(list(ids))).values(**patch)
            )
            return result.rowcount

    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        tbl = self._table(table)
        stmt = delete(tbl)
        for flt in filters:
            stmt = stmt.where(self._clause(tbl, flt))
        async with self._session_factory.begin() as session:
            result = await session.execute(stmt)
            return result.rowcount
