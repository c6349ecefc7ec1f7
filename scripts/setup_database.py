#!/usr/bin/env python
"""Create the schema and import the classification scheme.

Usage:
    # Create tables and import the packaged scheme
    python scripts/setup_database.py

    # Import a different scheme file (existing codes keep their ids)
    python scripts/setup_database.py --scheme ./emdn_p09.yaml

    # Only import, tables already exist
    python scripts/setup_database.py --skip-create
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from device_pricing.config import settings
from device_pricing.core.engine import EngineContext
from device_pricing.core.engine_config import load_engine_config
from device_pricing.core.hierarchy import import_scheme, load_hierarchy, read_scheme
from device_pricing.infra.database import close_db_engine, get_engine
from device_pricing.infra.logging import get_logger, setup_logging
from device_pricing.infra.sql_store import SqlStore
from device_pricing.models import Base

setup_logging()
logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Create tables and import the classification scheme",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scheme",
        type=Path,
        default=settings.category_scheme_path,
        help="Scheme YAML file (default: packaged scheme)",
    )
    parser.add_argument(
        "--skip-create",
        action="store_true",
        help="Do not create missing tables",
    )
    return parser.parse_args()


async def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        if not args.skip_create:
            async with get_engine().begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables ensured", tables=sorted(Base.metadata.tables))

        store = SqlStore()
        written = await import_scheme(store, read_scheme(args.scheme))
        hierarchy = await load_hierarchy(store)

        # Fails if the rules or mapping tables reference missing codes
        EngineContext.build(load_engine_config(settings.engine_config_path), hierarchy)
    finally:
        await close_db_engine()

    print(f"Scheme imported: {len(hierarchy)} categories, {written} written")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
