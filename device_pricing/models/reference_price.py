"""ReferencePrice model - externally sourced price observation."""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from device_pricing.models.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from device_pricing.models.category import Category


class ReferencePrice(Base, TimestampMixin):
    """Reference price from a national tariff registry.

    `category_id` keeps the broad classification from import;
    `leaf_category_id` is the narrower node derived by the code mapper and
    must be the same node or one of its descendants. Price columns are
    never rewritten by correction pipelines.
    """

    __tablename__ = "reference_prices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    price_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_original: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    currency_original: Mapped[str | None] = mapped_column(String(3), nullable=True)
    source_country: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    source_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    xc_subcode: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    manufacturer_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    component_type: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    price_scope: Mapped[str] = mapped_column(String(16), nullable=False, default="component")
    product_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    leaf_category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    component_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    category: Mapped["Category | None"] = relationship(
        "Category",
        foreign_keys=[category_id],
        lazy="selectin",
    )
    leaf_category: Mapped["Category | None"] = relationship(
        "Category",
        foreign_keys=[leaf_category_id],
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ReferencePrice(id={self.id}, source_code='{self.source_code}')>"
