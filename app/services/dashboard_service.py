import functools
import logging
import math

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.constants import USAGE_PERIODS
from app.core.dates import add_months, normalize_datetime, period_start, utcnow
from app.core.exceptions import ValidationError
from app.ml.forecast import forecast_monthly_usage
from app.models.activity import Activity
from app.models.monthly_stat import MonthlyServiceStat
from app.models.product import Product
from app.models.service_type import ServiceType
from app.models.usage import RelatedProductUsage, Usage
from app.services.activity_service import recent_activities

logger = logging.getLogger(__name__)


def _degrades_to(empty_factory):
    """Reporting helpers log database failures and return an empty result."""

    def decorator(func_):
        @functools.wraps(func_)
        def wrapper(db, store_id, *args, **kwargs):
            try:
                return func_(db, store_id, *args, **kwargs)
            except SQLAlchemyError:
                logger.exception(
                    "Dashboard query %s failed; returning empty result.",
                    func_.__name__,
                    extra={"store_id": store_id},
                )
                db.rollback()
                return empty_factory()

        return wrapper

    return decorator


def _product_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "brand": product.brand,
        "name": product.name,
        "category": product.category,
        "total_quantity": product.total_quantity,
        "in_use_quantity": product.in_use_quantity,
        "lot_quantity": product.lot_quantity,
        "min_stock_alert": product.min_stock_alert,
        "usage_count": product.usage_count,
        "last_used": product.last_used,
    }


def _activity_dict(activity: Activity) -> dict:
    return {
        "id": activity.id,
        "user_id": activity.user_id,
        "category": activity.category,
        "action": activity.action,
        "metadata": activity.details or {},
        "created_at": activity.created_at,
    }


def _count(db: Session, column, *criteria) -> int:
    return db.execute(select(func.count(column)).where(*criteria)).scalar_one()


def _low_stock_products(db: Session, store_id: int) -> list[Product]:
    return list(
        db.execute(
            select(Product)
            .where(Product.store_id == store_id, Product.lot_quantity <= Product.min_stock_alert)
            .order_by(Product.lot_quantity, Product.name)
        ).scalars().all()
    )


def _empty_dashboard_summary():
    return {
        "total_products": 0,
        "total_service_types": 0,
        "total_usage_records": 0,
        "low_stock_count": 0,
        "recent_activity": [],
    }


@_degrades_to(_empty_dashboard_summary)
def get_dashboard_summary(db: Session, store_id: int) -> dict:
    settings = get_settings()
    activities = recent_activities(db, store_id, limit=settings.DASHBOARD_RECENT_ACTIVITY_LIMIT)
    return {
        "total_products": _count(db, Product.id, Product.store_id == store_id),
        "total_service_types": _count(db, ServiceType.id, ServiceType.store_id == store_id),
        "total_usage_records": _count(db, Usage.id, Usage.store_id == store_id),
        "low_stock_count": len(_low_stock_products(db, store_id)),
        "recent_activity": [_activity_dict(activity) for activity in activities],
    }


def _empty_inventory_summary():
    return {
        "total_products": 0,
        "category_breakdown": [],
        "low_stock_products": [],
        "recently_used": [],
    }


@_degrades_to(_empty_inventory_summary)
def get_inventory_summary(db: Session, store_id: int) -> dict:
    settings = get_settings()
    categories = db.execute(
        select(Product.category, func.count(Product.id))
        .where(Product.store_id == store_id)
        .group_by(Product.category)
        .order_by(Product.category)
    ).all()
    recently_used = db.execute(
        select(Product)
        .where(Product.store_id == store_id, Product.last_used.is_not(None))
        .order_by(Product.last_used.desc(), Product.id.desc())
        .limit(settings.DASHBOARD_RECENTLY_USED_LIMIT)
    ).scalars().all()

    return {
        "total_products": sum(count for _, count in categories),
        "category_breakdown": [
            {"category": category, "count": count} for category, count in categories
        ],
        "low_stock_products": [_product_dict(p) for p in _low_stock_products(db, store_id)],
        "recently_used": [_product_dict(p) for p in recently_used],
    }


def _empty_usage_statistics():
    return {
        "period": None,
        "top_used_products": [],
        "top_service_types": [],
        "monthly_usage_trend": [],
        "usage_by_category": [],
    }


@_degrades_to(_empty_usage_statistics)
def get_usage_statistics(db: Session, store_id: int, period: str = "month") -> dict:
    if period not in USAGE_PERIODS:
        raise ValidationError(
            "period must be one of: {}".format(", ".join(sorted(USAGE_PERIODS)))
        )
    settings = get_settings()
    since = period_start(USAGE_PERIODS[period])
    in_period = (Usage.store_id == store_id, Usage.date >= since)

    usage_count = func.count(Usage.id).label("usage_count")
    total_amount = func.coalesce(func.sum(Usage.usage_amount), 0.0).label("total_amount")

    top_products = db.execute(
        select(Product, usage_count, total_amount)
        .join(Usage, Usage.product_id == Product.id)
        .where(*in_period)
        .group_by(Product.id)
        .order_by(desc("usage_count"), desc("total_amount"), Product.id)
        .limit(settings.DASHBOARD_TOP_LIMIT)
    ).all()

    top_service_types = db.execute(
        select(ServiceType, usage_count, total_amount)
        .join(Usage, Usage.service_type_id == ServiceType.id)
        .where(*in_period)
        .group_by(ServiceType.id)
        .order_by(desc("usage_count"), desc("total_amount"), ServiceType.id)
        .limit(settings.DASHBOARD_TOP_LIMIT)
    ).all()

    by_category = db.execute(
        select(Product.category, usage_count, total_amount)
        .join(Usage, Usage.product_id == Product.id)
        .where(*in_period)
        .group_by(Product.category)
        .order_by(desc("usage_count"), Product.category)
    ).all()

    trend = {}
    trend_rows = db.execute(
        select(Usage.date, Usage.usage_amount).where(
            Usage.store_id == store_id,
            Usage.date >= period_start(USAGE_PERIODS["year"]),
        )
    ).all()
    for used_on, amount in trend_rows:
        moment = normalize_datetime(used_on)
        bucket = trend.setdefault(
            (moment.year, moment.month),
            {"year": moment.year, "month": moment.month, "total_amount": 0.0, "usage_count": 0},
        )
        bucket["total_amount"] += amount
        bucket["usage_count"] += 1

    return {
        "period": period,
        "top_used_products": [
            {"product": _product_dict(product), "usage_count": count, "total_amount": total}
            for product, count, total in top_products
        ],
        "top_service_types": [
            {
                "service_type": {"id": service_type.id, "name": service_type.name},
                "usage_count": count,
                "total_amount": total,
            }
            for service_type, count, total in top_service_types
        ],
        "monthly_usage_trend": [trend[key] for key in sorted(trend)],
        "usage_by_category": [
            {"category": category, "count": count, "total_amount": total}
            for category, count, total in by_category
        ],
    }


def _monthly_product_usage(db: Session, store_id: int, since) -> dict[int, dict]:
    """Per-product ``{(year, month): amount}`` for primary and related draws."""
    primary = db.execute(
        select(Usage.product_id, Usage.date, Usage.usage_amount).where(
            Usage.store_id == store_id, Usage.date >= since
        )
    ).all()
    related = db.execute(
        select(RelatedProductUsage.product_id, Usage.date, RelatedProductUsage.amount)
        .join(Usage, Usage.id == RelatedProductUsage.usage_id)
        .where(Usage.store_id == store_id, Usage.date >= since)
    ).all()

    history: dict[int, dict] = {}
    for product_id, used_on, amount in list(primary) + list(related):
        moment = normalize_datetime(used_on)
        months = history.setdefault(product_id, {})
        key = (moment.year, moment.month)
        months[key] = months.get(key, 0.0) + float(amount or 0.0)
    return history


def _reorder_suggestions(
    db: Session, store_id: int, *, start_year: int, start_month: int
) -> list[dict]:
    history = _monthly_product_usage(db, store_id, period_start(USAGE_PERIODS["year"]))
    if not history:
        return []

    products = db.execute(
        select(Product).where(Product.store_id == store_id, Product.id.in_(list(history)))
    ).scalars().all()

    suggestions = []
    for product in products:
        rows = [(year, month, total) for (year, month), total in history[product.id].items()]
        predicted = forecast_monthly_usage(
            rows, start_year=start_year, start_month=start_month, months=1
        )[0]["predicted_amount"]
        capacity = product.capacity or 0.0
        unused = capacity * product.lot_quantity
        if unused >= predicted:
            continue
        shortfall = predicted - unused
        suggestions.append(
            {
                "product": _product_dict(product),
                "predicted_next_month_usage": predicted,
                "unused_amount": round(unused, 2),
                "suggested_lots": math.ceil(shortfall / capacity) if capacity else 1,
            }
        )
    suggestions.sort(key=lambda item: item["unused_amount"] - item["predicted_next_month_usage"])
    return suggestions


def _empty_predictions():
    return {"expected_usage_by_month": [], "reorder_suggestions": []}


@_degrades_to(_empty_predictions)
def get_future_predictions(db: Session, store_id: int, months: int | None = None) -> dict:
    if months is None:
        months = get_settings().FORECAST_MONTHS

    history = db.execute(
        select(
            MonthlyServiceStat.year,
            MonthlyServiceStat.month,
            func.sum(MonthlyServiceStat.total_usage),
        )
        .join(ServiceType, ServiceType.id == MonthlyServiceStat.service_type_id)
        .where(ServiceType.store_id == store_id)
        .group_by(MonthlyServiceStat.year, MonthlyServiceStat.month)
    ).all()

    now = utcnow()
    start_year, start_month = add_months(now.year, now.month, 1)
    return {
        "expected_usage_by_month": forecast_monthly_usage(
            history,
            start_year=start_year,
            start_month=start_month,
            months=months,
        ),
        "reorder_suggestions": _reorder_suggestions(
            db, store_id, start_year=start_year, start_month=start_month
        ),
    }
