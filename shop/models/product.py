import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shop.core.database import Base

def _uuid() -> str:
    return str(uuid.uuid4())

product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    sku = Column(String(50), unique=True, index=True, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=21)
    is_active = Column(Boolean, default=True, nullable=False)
    is_customizable = Column(Boolean, default=False, nullable=False)
    base_production_days = Column(Integer, default=0, nullable=False)
    weight_grams = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    translations = relationship("ProductTranslation", back_populates="product", cascade="all, delete-orphan")
    component_options = relationship(
        "ProductComponentOption",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductComponentOption.display_order",
    )
    categories = relationship("Category", secondary=product_categories)

class ProductTranslation(Base):
    __tablename__ = "product_translations"
    __table_args__ = (
        UniqueConstraint("product_id", "locale", name="uq_product_translation_locale"),
        UniqueConstraint("locale", "slug", name="uq_product_translation_slug"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    locale = Column(String(5), nullable=False)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False)
    short_description = Column(String(500), nullable=True)
    long_description = Column(String, nullable=True)

    product = relationship("Product", back_populates="translations")

class ProductComponentOption(Base):
    """A component offered as a customization of a product, with its price delta."""
    __tablename__ = "product_component_options"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    component_id = Column(String(36), nullable=False, index=True)
    option_group = Column(String(100), nullable=False)
    price_modifier = Column(Numeric(10, 2), nullable=False, default=0)
    is_default = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="component_options")
