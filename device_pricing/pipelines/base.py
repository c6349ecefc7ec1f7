"""Base class for batch correction pipelines.

A pipeline snapshots the ordered id list of its target rows before it
touches anything, then works through the snapshot in fixed-size batches.
Rows created or changed mid-run can therefore never be skipped or
processed twice. Cancellation is checked between batches only.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from device_pricing.config import settings
from device_pricing.core.engine import EngineContext
from device_pricing.core.errors import ValidationFailure
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Filter, Row, Store, in_
from device_pricing.schemas.report import BatchReport, RowChange, ValidationFailureReport


def append_note(notes: str | None, note: str, separator: str = "; ") -> str:
    """Append to an audit trail without touching earlier entries."""
    if not notes:
        return note
    return f"{notes}{separator}{note}"


@dataclass(frozen=True)
class PipelineOptions:
    """Run options shared by every pipeline."""

    dry_run: bool = False
    force: bool = False
    allow_reassign: bool = False
    batch_size: int | None = None


@dataclass
class RowOutcome:
    """What processing one row decided.

    `patch` updates the target row in one write. `upserts` and `deletes`
    touch other rows (or tables) for the same change. `warnings` are
    carried into the report for a reviewer but do not block the change.
    """

    buckets: tuple[str, ...]
    patch: dict[str, Any] = field(default_factory=dict)
    upserts: list[tuple[str, Row]] = field(default_factory=list)
    deletes: list[tuple[str, list[Filter]]] = field(default_factory=list)
    warnings: tuple[str, ...] = ()

    @classmethod
    def unchanged(cls, bucket: str = "unchanged") -> "RowOutcome":
        return cls(buckets=(bucket,))

    @property
    def changed(self) -> bool:
        return bool(self.patch or self.upserts or self.deletes)


class BatchPipeline(ABC):
    """Abstract base for idempotent batch pipelines."""

    table: str = ""

    def __init__(
        self,
        engine: EngineContext,
        store: Store,
        options: PipelineOptions | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.options = options or PipelineOptions()
        self.batch_size = self.options.batch_size or settings.batch_size
        self.logger = get_logger(__name__, pipeline=self.name)

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this pipeline."""
        pass

    def target_filters(self) -> Sequence[Filter]:
        """Filters selecting the rows to snapshot."""
        return ()

    async def before_batch(self, rows: list[Row]) -> None:
        """Prefetch data shared by a batch."""
        return None

    @abstractmethod
    async def process_row(self, row: Row) -> RowOutcome:
        """Recompute one row.

        Raises:
            ValidationFailure: If the computed change fails its checks
        """
        pass

    async def snapshot_ids(self) -> list[str]:
        rows = await self.store.select(
            self.table,
            self.target_filters(),
            order_by=("id",),
            columns=("id",),
        )
        return [str(row["id"]) for row in rows]

    async def run(self, cancel: asyncio.Event | None = None) -> BatchReport:
        """Run the pipeline over the current snapshot.

        Args:
            cancel: Checked before each batch; when set, the run stops and
                the report is marked cancelled

        Returns:
            BatchReport with per-bucket counts, changed ids and failures
        """
        start = time.perf_counter()
        report = BatchReport(pipeline=self.name, dry_run=self.options.dry_run)
        buckets: Counter[str] = Counter()

        ids = await self.snapshot_ids()
        report.total = len(ids)
        self.logger.info(
            "Pipeline started",
            dry_run=self.options.dry_run,
            force=self.options.force,
            total=len(ids),
            batch_size=self.batch_size,
        )

        for offset in range(0, len(ids), self.batch_size):
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                self.logger.warning("Pipeline cancelled", processed=report.processed)
                break

            batch_ids = ids[offset:offset + self.batch_size]
            rows = await self.store.select(self.table, [in_("id", batch_ids)])
            await self.before_batch(rows)

            for row in rows:
                row_id = str(row["id"])
                try:
                    outcome = await self.process_row(row)
                except ValidationFailure as e:
                    buckets["validation_failed"] += 1
                    report.validation_failures.append(
                        ValidationFailureReport(row_id=e.row_id, reasons=e.reasons)
                    )
                    self.logger.warning("Row failed validation", row_id=e.row_id, reasons=e.reasons)
                    continue
                finally:
                    report.processed += 1

                buckets.update(outcome.buckets)
                if not outcome.changed:
                    continue

                report.changed_ids.append(row_id)
                report.changes.append(
                    RowChange(
                        row_id=row_id,
                        buckets=list(outcome.buckets),
                        before={k: row.get(k) for k in outcome.patch},
                        after=dict(outcome.patch),
                        created=len(outcome.upserts),
                        deleted=len(outcome.deletes),
                        warnings=list(outcome.warnings),
                    )
                )
                self.logger.info(
                    "Row change",
                    row_id=row_id,
                    buckets=list(outcome.buckets),
                    old={k: row.get(k) for k in outcome.patch},
                    new=outcome.patch,
                    warnings=list(outcome.warnings),
                    dry_run=self.options.dry_run,
                )

                if not self.options.dry_run:
                    report.written += await self.apply(row_id, outcome)

            self.logger.info(
                "Batch processed",
                offset=offset,
                batch_rows=len(rows),
                processed=report.processed,
                changed=len(report.changed_ids),
            )

        report.buckets = dict(sorted(buckets.items()))
        report.duration_ms = int((time.perf_counter() - start) * 1000)
        self.logger.info(
            "Pipeline completed",
            dry_run=self.options.dry_run,
            cancelled=report.cancelled,
            processed=report.processed,
            changed=len(report.changed_ids),
            written=report.written,
            validation_failures=len(report.validation_failures),
            buckets=report.buckets,
            duration_ms=report.duration_ms,
        )
        return report

    async def apply(self, row_id: str, outcome: RowOutcome) -> int:
        """Write one row's change. Returns the number of store writes.

        The target row's patch goes last. It usually carries the marker
        that makes later runs skip the row, so a run interrupted by a store
        error leaves the row eligible and a re-run completes the change.
        """
        writes = 0
        for table, new_row in outcome.upserts:
            await self.store.upsert(table, new_row)
            writes += 1
        for table, filters in outcome.deletes:
            await self.store.delete(table, filters)
            writes += 1
        if outcome.patch:
            await self.store.update_batch(self.table, [row_id], outcome.patch)
            writes += 1
        return writes
