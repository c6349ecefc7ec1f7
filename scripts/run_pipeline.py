#!/usr/bin/env python
"""Run batch correction pipelines against the configured database.

Usage:
    # Preview what classification would change
    python scripts/run_pipeline.py classify_products --dry-run

    # Run the full refresh sequence
    python scripts/run_pipeline.py --all

    # Recompute already populated rows in batches of 200
    python scripts/run_pipeline.py classify_reference_prices --force --batch-size 200

    # List available pipelines
    python scripts/run_pipeline.py --list

Ctrl-C stops a run after the current batch.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from device_pricing.config import settings
from device_pricing.core.engine import load_engine
from device_pricing.infra.database import close_db_engine
from device_pricing.infra.logging import get_logger, setup_logging
from device_pricing.infra.sql_store import SqlStore
from device_pricing.pipelines import (
    DEFAULT_SEQUENCE,
    PipelineOptions,
    PipelineRegistry,
    register_all_pipelines,
)
from device_pricing.schemas.report import BatchReport

setup_logging()
logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run device pricing batch pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "pipelines",
        nargs="*",
        help="Pipeline names, run in the given order",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Run the default refresh sequence",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report changes without writing",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Recompute rows that are already populated",
    )
    parser.add_argument(
        "--allow-reassign",
        action="store_true",
        help="Allow products to move to another branch",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Rows per batch (default: {settings.batch_size})",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List all available pipelines",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print full reports as JSON",
    )

    return parser.parse_args()


def print_report(report: BatchReport, as_json: bool) -> None:
    if as_json:
        print(report.model_dump_json(indent=2))
        return

    mode = "DRY RUN" if report.dry_run else "APPLIED"
    print(f"\n{report.pipeline} [{mode}]")
    print("-" * 40)
    print(f"  Rows:      {report.processed}/{report.total}")
    print(f"  Changed:   {len(report.changed_ids)}")
    print(f"  Writes:    {report.written}")
    for bucket, count in report.buckets.items():
        print(f"    {bucket}: {count}")
    for failure in report.validation_failures:
        print(f"  ! {failure.row_id}: {'; '.join(failure.reasons)}")
    if report.cancelled:
        print("  (cancelled)")


async def main() -> int:
    """Main entry point."""
    args = parse_args()
    register_all_pipelines()

    if args.list:
        print("\nAvailable pipelines:")
        print("-" * 40)
        for name in PipelineRegistry.available_pipelines():
            print(f"  - {name}")
        print(f"\nDefault sequence: {' -> '.join(DEFAULT_SEQUENCE)}")
        return 0

    names = DEFAULT_SEQUENCE if args.all else args.pipelines
    if not names:
        print("Error: name at least one pipeline (or use --all, --list)")
        return 1

    unknown = [n for n in names if n not in PipelineRegistry.available_pipelines()]
    if unknown:
        print(f"Error: Unknown pipelines: {unknown}")
        print("Use --list to see available pipelines")
        return 1

    options = PipelineOptions(
        dry_run=args.dry_run,
        force=args.force,
        allow_reassign=args.allow_reassign,
        batch_size=args.batch_size,
    )

    cancel = asyncio.Event()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.set)

    store = SqlStore()
    try:
        engine = await load_engine(store, config_path=settings.engine_config_path)
        for pipeline in PipelineRegistry.build_sequence(names, engine, store, options):
            report = await pipeline.run(cancel)
            print_report(report, args.json)
            if report.cancelled:
                return 130
    finally:
        await close_db_engine()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
