"""Base model infrastructure for SQLAlchemy models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


def new_id() -> str:
    """Generate an opaque surrogate key."""
    return str(uuid.uuid4())


def derived_id(*parts: str) -> str:
    """Stable key for a row derived from other rows."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, "/".join(parts)))


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
