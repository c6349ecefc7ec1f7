"""SQLAlchemy models for the catalog and reference-price tables."""

from device_pricing.models.base import Base, TimestampMixin, new_id
from device_pricing.models.category import Category
from device_pricing.models.product import Product
from device_pricing.models.product_price_match import ProductPriceMatch
from device_pricing.models.reference_price import ReferencePrice

__all__ = [
    "Base",
    "TimestampMixin",
    "new_id",
    "Category",
    "Product",
    "ProductPriceMatch",
    "ReferencePrice",
]
