"""Store protocol - the persistence seam used by the engine.

The engine never talks to a database directly; it reads and writes rows as
plain dicts through a Store. Two implementations exist:
- SqlStore (infra.sql_store): async SQLAlchemy over the declarative models
- MemoryStore (infra.memory_store): dict-backed, for tests and dry tooling
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

Row = dict[str, Any]


class FilterOp(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    IN = "in"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    LIKE = "like"


@dataclass(frozen=True)
class Filter:
    """Single column predicate. Filters passed together are AND-ed."""

    column: str
    op: FilterOp
    value: Any = None

    def matches(self, row: Row) -> bool:
        """Evaluate against an in-memory row."""
        current = row.get(self.column)
        if self.op is FilterOp.EQ:
            return current == self.value
        if self.op is FilterOp.IN:
            return current in self.value
        if self.op is FilterOp.IS_NULL:
            return current is None
        if self.op is FilterOp.NOT_NULL:
            return current is not None
        if self.op is FilterOp.LIKE:
            return current is not None and like_to_regex(self.value).fullmatch(str(current)) is not None
        raise ValueError(f"Unsupported filter op: {self.op}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.EQ, value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, FilterOp.IN, tuple(values))


def is_null(column: str) -> Filter:
    return Filter(column, FilterOp.IS_NULL)


def not_null(column: str) -> Filter:
    return Filter(column, FilterOp.NOT_NULL)


def like(column: str, pattern: str) -> Filter:
    """SQL LIKE: `%` matches any run, `_` a single character."""
    return Filter(column, FilterOp.LIKE, pattern)


def like_to_regex(pattern: str) -> re.Pattern[str]:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


class Store(Protocol):
    """Row-level persistence used by the engine and pipelines.

    Errors raised by an implementation propagate to the caller unchanged.
    """

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = ("id",),
        columns: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Rows matching all filters, ordered by the given columns."""
        ...

    async def upsert(self, table: str, row: Row) -> Row:
        """Insert or update a row by id. A missing id is generated."""
        ...

    async def update_batch(self, table: str, ids: Sequence[str], patch: Row) -> int:
        """Apply the same patch to each id. Returns rows updated."""
        ...

    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        """Delete rows matching all filters. Returns rows deleted."""
        ...
