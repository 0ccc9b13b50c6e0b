from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.database.base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    sku = Column(String(100))
    category = Column(String(100))

    cost_price = Column(Float, nullable=False, default=0)
    # Rollup fields: mirrored from the default variant when variants exist.
    unit_price = Column(Float, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    unit_of_measurement = Column(String(100), nullable=False, default="pcs")

    hidden = Column(Boolean, nullable=False, default=False)
    image_url = Column(String)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )

    __table_args__ = (
        Index("idx_products_category", "category"),
    )


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    sku = Column(String(100), unique=True)
    unit_label = Column(String(100), nullable=False)
    cost_price = Column(Float, nullable=False, default=0)
    unit_price = Column(Float, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    conversion_factor = Column(Float, nullable=False, default=1)
    barcode = Column(String(255))

    is_default = Column(Boolean, nullable=False, default=False)
    hidden = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        Index("idx_variants_product", "product_id"),
        Index("idx_variants_product_unit", "product_id", "unit_label"),
    )


__all__ = ["Product", "ProductVariant"]
