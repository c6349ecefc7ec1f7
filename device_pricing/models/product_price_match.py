"""ProductPriceMatch model - cached resolver output."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from device_pricing.models.base import Base, TimestampMixin, new_id


class ProductPriceMatch(Base, TimestampMixin):
    """Scored link between a product and a reference price.

    Not authoritative: rebuilt by the `match_products_to_prices` pipeline.
    """

    __tablename__ = "product_price_matches"
    __table_args__ = (
        UniqueConstraint("product_id", "reference_price_id", name="uq_product_price_match"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reference_price_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reference_prices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    match_score: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    match_type: Mapped[str] = mapped_column(String(32), nullable=False)
    match_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    match_method: Mapped[str] = mapped_column(String(16), nullable=False, default="rule")

    def __repr__(self) -> str:
        return (
            f"<ProductPriceMatch(product_id={self.product_id}, "
            f"reference_price_id={self.reference_price_id}, score={self.match_score})>"
        )
