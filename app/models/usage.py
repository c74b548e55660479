from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.database.base import Base


class Usage(Base):
    __tablename__ = "usages"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)

    service_type_id = Column(Integer, ForeignKey("service_types.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    used_lot_id = Column(Integer, ForeignKey("product_lots.id"))
    user_id = Column(Integer, ForeignKey("users.id"))

    usage_amount = Column(Float, nullable=False)
    default_amount = Column(Float)
    nail_length = Column(String(16), nullable=False)
    is_custom_amount = Column(Boolean, nullable=False, default=False)
    is_gel_service = Column(Boolean, nullable=False, default=False)
    note = Column(String)

    date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    related_usages = relationship(
        "RelatedProductUsage",
        back_populates="usage",
        order_by="RelatedProductUsage.order, RelatedProductUsage.id",
    )

    __table_args__ = (
        Index("idx_usages_store_date", "store_id", "date"),
        Index("idx_usages_product", "product_id"),
        Index("idx_usages_service_type", "service_type_id"),
    )


class RelatedProductUsage(Base):
    __tablename__ = "related_product_usages"

    id = Column(Integer, primary_key=True)
    usage_id = Column(Integer, ForeignKey("usages.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    used_lot_id = Column(Integer, ForeignKey("product_lots.id"))

    amount = Column(Float, nullable=False)
    role = Column(String(32))
    order = Column(Integer, nullable=False, default=0)

    usage = relationship("Usage", back_populates="related_usages")


__all__ = ["RelatedProductUsage", "Usage"]
