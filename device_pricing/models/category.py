"""Category model - node of the device classification hierarchy."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from device_pricing.models.base import Base, TimestampMixin, new_id


class Category(Base, TimestampMixin):
    """Classification node (e.g. P0908 -> P090803 -> P09080301).

    `path` is the dot-joined chain of ancestor codes including the node
    itself and is unique across the table.
    """

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    path: Mapped[str] = mapped_column(String(400), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, code='{self.code}')>"
