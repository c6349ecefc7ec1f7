"""Infrastructure - Database, stores, logging."""

from device_pricing.infra.database import get_db_session, DatabaseSession, close_db_engine
from device_pricing.infra.logging import setup_logging, get_logger
from device_pricing.infra.memory_store import MemoryStore
from device_pricing.infra.sql_store import SqlStore
from device_pricing.infra.store import Filter, Store

__all__ = [
    "get_db_session",
    "DatabaseSession",
    "close_db_engine",
    "setup_logging",
    "get_logger",
    "MemoryStore",
    "SqlStore",
    "Filter",
    "Store",
]
