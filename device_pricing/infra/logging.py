"""structlog setup for the API and the pipeline CLI.

Pipelines log one event per row change with the old and new values, so
the log stream doubles as the audit trail for tables without a notes
column. Prices are Decimals; they are rendered as plain strings so the
JSON stays machine-readable.
"""

import logging
import sys
from decimal import Decimal
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from device_pricing.config import settings


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def render_decimals(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Replace Decimal values (also inside before/after dicts) with strings."""
    return {key: _plain(value) for key, value in event_dict.items()}


def setup_logging() -> None:
    """Configure structlog once per process.

    JSON lines in staging and prod, coloured console output in dev or when
    `LOG_JSON` is off. Called by the app lifespan and by the scripts.
    """
    use_json = settings.log_json and settings.environment != "dev"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        render_decimals,
    ]

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    level = logging.getLevelName(settings.log_level.upper())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # SQL echo and per-request client logs drown out row changes
    for noisy in ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Logger for `name` with `initial_context` bound, e.g. `pipeline=...`."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
