"""Tests for the declarative models."""

from sqlalchemy.orm import DeclarativeBase

from device_pricing.models import Base, Category, Product, ProductPriceMatch, ReferencePrice
from device_pricing.models.base import TimestampMixin, new_id


def test_base_is_declarative_base():
    assert issubclass(Base, DeclarativeBase)
    assert hasattr(TimestampMixin, "created_at")
    assert hasattr(TimestampMixin, "updated_at")


def test_new_id_is_unique():
    assert new_id() != new_id()
    assert len(new_id()) == 36


def test_tables_registered():
    assert set(Base.metadata.tables) == {
        "categories",
        "products",
        "reference_prices",
        "product_price_matches",
    }


def test_category_columns():
    columns = {c.name for c in Category.__table__.columns}
    assert {"id", "code", "name", "parent_id", "depth", "path"} <= columns
    assert Category.__table__.c.path.unique
    assert Category.__table__.c.code.unique


def test_reference_price_has_both_categories():
    columns = {c.name for c in ReferencePrice.__table__.columns}
    assert {"category_id", "leaf_category_id", "xc_subcode", "component_type", "price_scope"} <= columns
    assert {"category", "leaf_category"} <= set(ReferencePrice.__mapper__.relationships.keys())


def test_product_has_category_relationship():
    assert Product.__tablename__ == "products"
    assert "category" in Product.__mapper__.relationships


def test_match_unique_per_pair():
    constraints = {c.name for c in ProductPriceMatch.__table__.constraints}
    assert "uq_product_price_match" in constraints
