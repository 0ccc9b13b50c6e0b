from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Index, Integer, String

from app.database.base import Base


class DamagedProduct(Base):
    __tablename__ = "damaged_products"

    id = Column(Integer, primary_key=True)
    customer_name = Column(String(255), nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    action_taken = Column(String(255))
    # Soft reference; the variant may since have been deleted.
    variant_id = Column(Integer)
    unit_of_measurement = Column(String(50), nullable=False)

    date = Column(Date, nullable=False)
    logged_at = Column(DateTime(timezone=True))

    refunded = Column(Boolean, nullable=False, default=False)
    refunded_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_damaged_products_date", "date"),
        Index("idx_damaged_products_name", "product_name"),
    )


__all__ = ["DamagedProduct"]
