from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.database.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(15))
    purchase_date = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    products = relationship(
        "CustomerProduct",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerProduct.id",
    )

    __table_args__ = (
        Index("idx_customers_purchase_date", "purchase_date"),
    )


class CustomerProduct(Base):
    """A purchased line item. ``product_name`` is copied text, not a key, so
    history survives product renames."""

    __tablename__ = "customer_products"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)

    product_name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    unit = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    purchase_date = Column(Date)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    customer = relationship("Customer", back_populates="products")

    __table_args__ = (
        Index("idx_customer_products_customer", "customer_id"),
        Index("idx_customer_products_name", "product_name"),
    )


__all__ = ["Customer", "CustomerProduct"]
