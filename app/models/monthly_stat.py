from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint

from app.database.base import Base


class MonthlyServiceStat(Base):
    __tablename__ = "monthly_service_stats"

    id = Column(Integer, primary_key=True)
    service_type_id = Column(Integer, ForeignKey("service_types.id"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    total_usage = Column(Float, nullable=False, default=0)
    usage_count = Column(Integer, nullable=False, default=0)
    average_usage = Column(Float, nullable=False, default=0)

    seasonal_factor = Column(Float)
    predicted_usage = Column(Float)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("service_type_id", "year", "month", name="uq_monthly_service_stat"),
    )


__all__ = ["MonthlyServiceStat"]
