"""In-memory Store implementation."""

import copy
from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Filter, Row
from device_pricing.models.base import new_id

logger = get_logger(__name__)


def _sort_key(value: Any) -> tuple[bool, Any]:
    # NULLs last, matching PostgreSQL ascending order
    return (value is None, value if value is not None else 0)


class MemoryStore:
    """Dict-backed store keyed by table name then row id.

    Rows are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self, tables: dict[str, list[Row]] | None = None) -> None:
        self._tables: dict[str, dict[str, Row]] = defaultdict(dict)
        self.write_count = 0
        for table, rows in (tables or {}).items():
            for row in rows:
                row = dict(row)
                row.setdefault("id", new_id())
                self._tables[table][str(row["id"])] = row

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = ("id",),
        columns: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        rows = [r for r in self._tables[table].values() if all(f.matches(r) for f in filters)]
        rows.sort(key=lambda r: tuple(_sort_key(r.get(col)) for col in order_by))
        if limit is not None:
            rows = rows[:limit]
        if columns is not None:
            return [{col: r.get(col) for col in columns} for r in rows]
        return [copy.deepcopy(r) for r in rows]

    async def upsert(self, table: str, row: Row) -> Row:
        row = dict(row)
        row_id = str(row.get("id") or new_id())
        row["id"] = row_id
        stored = self._tables[table].setdefault(row_id, {})
        stored.update(row)
        self.write_count += 1
        return copy.deepcopy(stored)

    async def update_batch(self, table: str, ids: Sequence[str], patch: Row) -> int:
        updated = 0
        for row_id in ids:
            stored = self._tables[table].get(str(row_id))
            if stored is None:
                continue
            stored.update(patch)
            updated += 1
        if updated:
            self.write_count += 1
        return updated

    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        doomed = [
            row_id
            for row_id, row in self._tables[table].items()
            if all(f.matches(row) for f in filters)
        ]
        for row_id in doomed:
            del self._tables[table][row_id]
        if doomed:
            self.write_count += 1
        return len(doomed)

    def rows(self, table: str) -> list[Row]:
        """Snapshot of a table, for assertions."""
        return [copy.deepcopy(r) for r in self._tables[table].values()]
