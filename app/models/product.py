from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from app.database.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)

    brand = Column(String, nullable=False)
    name = Column(String, nullable=False)
    color_code = Column(String)
    color_name = Column(String)
    category = Column(String(32), nullable=False)

    price = Column(Float, nullable=False, default=0)
    capacity = Column(Float)
    capacity_unit = Column(String(16))

    # total_quantity == in_use_quantity + lot_quantity
    total_quantity = Column(Integer, nullable=False, default=0)
    in_use_quantity = Column(Integer, nullable=False, default=0)
    lot_quantity = Column(Integer, nullable=False, default=0)
    min_stock_alert = Column(Integer, nullable=False, default=1)

    usage_count = Column(Integer, nullable=False, default=0)
    last_used = Column(DateTime(timezone=True))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    lots = relationship(
        "ProductLot",
        back_populates="product",
        order_by="ProductLot.id",
    )

    __table_args__ = (
        Index("idx_products_store_category", "store_id", "category"),
        Index("idx_products_store_brand", "store_id", "brand"),
    )


class ProductLot(Base):
    __tablename__ = "product_lots"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    is_in_use = Column(Boolean, nullable=False, default=False)
    current_amount = Column(Float)
    started_at = Column(DateTime(timezone=True))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    product = relationship("Product", back_populates="lots")

    __table_args__ = (
        CheckConstraint(
            "current_amount IS NULL OR current_amount >= 0",
            name="ck_product_lots_amount_non_negative",
        ),
        Index("idx_product_lots_fifo", "product_id", "is_in_use", "started_at", "id"),
    )


__all__ = ["Product", "ProductLot"]
