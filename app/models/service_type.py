from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.database.base import Base


class ServiceType(Base):
    __tablename__ = "service_types"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)

    name = Column(String, nullable=False)
    default_usage_amount = Column(Float, nullable=False, default=0.5)
    product_type = Column(String(32), nullable=False)

    is_gel_service = Column(Boolean, nullable=False, default=False)
    requires_base = Column(Boolean, nullable=False, default=False)
    requires_top = Column(Boolean, nullable=False, default=False)

    short_length_rate = Column(Integer, nullable=False, default=80)
    medium_length_rate = Column(Integer, nullable=False, default=100)
    long_length_rate = Column(Integer, nullable=False, default=130)
    allow_custom_amount = Column(Boolean, nullable=False, default=False)

    design_variant = Column(String)
    design_usage_rate = Column(Float)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    products = relationship(
        "ServiceTypeProduct",
        back_populates="service_type",
        order_by="ServiceTypeProduct.order, ServiceTypeProduct.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("store_id", "name", name="uq_service_types_store_name"),
    )


class ServiceTypeProduct(Base):
    __tablename__ = "service_type_products"

    id = Column(Integer, primary_key=True)
    service_type_id = Column(Integer, ForeignKey("service_types.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    usage_amount = Column(Float, nullable=False)
    is_required = Column(Boolean, nullable=False, default=True)
    product_role = Column(String(32))
    order = Column(Integer, nullable=False, default=0)

    service_type = relationship("ServiceType", back_populates="products")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("service_type_id", "product_id", name="uq_service_type_products_pair"),
    )


__all__ = ["ServiceType", "ServiceTypeProduct"]
