import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dates import year_month
from app.models.monthly_stat import MonthlyServiceStat

logger = logging.getLogger(__name__)


def _increment(db: Session, service_type_id: int, year: int, month: int, amount: float) -> bool:
    # SET expressions read the pre-update row, so the average uses the new totals.
    result = db.execute(
        update(MonthlyServiceStat)
        .where(
            MonthlyServiceStat.service_type_id == service_type_id,
            MonthlyServiceStat.year == year,
            MonthlyServiceStat.month == month,
        )
        .values(
            total_usage=MonthlyServiceStat.total_usage + amount,
            usage_count=MonthlyServiceStat.usage_count + 1,
            average_usage=(MonthlyServiceStat.total_usage + amount)
            / (MonthlyServiceStat.usage_count + 1),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_monthly_stats(
    db: Session, service_type_id: int, year: int, month: int
) -> Optional[MonthlyServiceStat]:
    stat = db.execute(
        select(MonthlyServiceStat).where(
            MonthlyServiceStat.service_type_id == service_type_id,
            MonthlyServiceStat.year == year,
            MonthlyServiceStat.month == month,
        )
    ).scalars().first()
    if stat is not None:
        db.refresh(stat)
    return stat


def list_monthly_stats(db: Session, service_type_id: int) -> list[MonthlyServiceStat]:
    rows = db.execute(
        select(MonthlyServiceStat)
        .where(MonthlyServiceStat.service_type_id == service_type_id)
        .order_by(MonthlyServiceStat.year, MonthlyServiceStat.month)
    ).scalars().all()
    return list(rows)


def record_monthly_usage(
    db: Session,
    service_type_id: int,
    amount: float,
    when: Optional[datetime] = None,
) -> MonthlyServiceStat:
    """Fold one usage into the (service type, year, month) rollup.

    Runs inside the caller's unit of work. Totals are only ever incremented;
    history is never recomputed from usage rows.
    """
    year, month = year_month(when)

    if not _increment(db, service_type_id, year, month, amount):
        try:
            with db.begin_nested():
                db.add(
                    MonthlyServiceStat(
                        service_type_id=service_type_id,
                        year=year,
                        month=month,
                        total_usage=amount,
                        usage_count=1,
                        average_usage=amount,
                    )
                )
        except IntegrityError:
            logger.info(
                "Monthly stat %s %04d-%02d created concurrently; incrementing instead.",
                service_type_id,
                year,
                month,
            )
            _increment(db, service_type_id, year, month, amount)

    return get_monthly_stats(db, service_type_id, year, month)
