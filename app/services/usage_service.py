"""Recording of product consumption for performed services.

A usage draws its primary product, and every related product, from the
oldest opened lot that still has product left (FIFO by ``started_at``, ties
broken by lot id). A single usage never spans two lots of the same product:
if the oldest open lot cannot cover the amount the whole usage is rejected.

Everything a usage touches (usage rows, lot decrements, product counters,
the activity row and the monthly rollup) is committed in one unit of work.
Lot decrements are compare-and-swap updates, so two technicians drawing from
the same bottle cannot both spend the last of it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.core.constants import ACTIVITY_USAGE, NAIL_LENGTHS
from app.core.dates import normalize_datetime, utcnow
from app.core.exceptions import (
    InsufficientQuantityError,
    NotFoundError,
    OutOfStockError,
    ValidationError,
)
from app.database.session import unit_of_work
from app.models.product import Product, ProductLot
from app.models.usage import RelatedProductUsage, Usage
from app.services.activity_service import log_activity
from app.services.product_service import bump_counters, get_product
from app.services.service_type_service import get_service_type, resolve_adjusted_amount
from app.services.stats_service import record_monthly_usage
from app.services.store_service import require_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelatedUsageEntry:
    product_id: int
    amount: float
    role: Optional[str] = None
    order: int = 0


def select_fifo_lot(db: Session, product_id: int) -> Optional[ProductLot]:
    """Oldest opened lot of the product that still has product left."""
    return db.execute(
        select(ProductLot)
        .where(
            ProductLot.product_id == product_id,
            ProductLot.is_in_use.is_(True),
            ProductLot.current_amount > 0,
        )
        .order_by(
            ProductLot.started_at.is_(None),
            ProductLot.started_at.asc(),
            ProductLot.id.asc(),
        )
        .limit(1)
    ).scalars().first()


def _draw_from_lot(db: Session, product_id: int, amount: float) -> ProductLot:
    lot = select_fifo_lot(db, product_id)
    if lot is None:
        logger.warning("Product %s is out of stock.", product_id, extra={"product_id": product_id})
        raise OutOfStockError(product_id)

    available = lot.current_amount
    if available is None or available < amount:
        logger.warning(
            "Lot %s cannot cover %s (remaining %s).",
            lot.id,
            amount,
            available,
            extra={"lot_id": lot.id},
        )
        raise InsufficientQuantityError(lot.id, amount, available)

    result = db.execute(
        update(ProductLot)
        .where(ProductLot.id == lot.id, ProductLot.current_amount >= amount)
        .values(current_amount=ProductLot.current_amount - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.refresh(lot)
        raise InsufficientQuantityError(lot.id, amount, lot.current_amount)

    db.expire(lot, ["current_amount"])
    return lot


def _validate_amount(amount: float, label: str) -> None:
    if amount is None or amount <= 0:
        raise ValidationError(f"{label} must be positive")


def record_usage(
    db: Session,
    store_id: int,
    *,
    product_id: int,
    service_type_id: int,
    nail_length: str,
    user_id: int,
    usage_amount: Optional[float] = None,
    is_custom_amount: bool = False,
    related: Iterable[RelatedUsageEntry] = (),
    note: Optional[str] = None,
    date: Optional[datetime] = None,
) -> Usage:
    """Consume product for one performed service; all or nothing."""
    if nail_length not in NAIL_LENGTHS:
        raise ValidationError(f"Unknown nail length {nail_length}")

    service_type = get_service_type(db, store_id, service_type_id)
    product = get_product(db, store_id, product_id)
    require_user(db, user_id, store_id)

    default_amount = service_type.default_usage_amount
    if usage_amount is None:
        usage_amount = resolve_adjusted_amount(service_type, default_amount, nail_length)
    _validate_amount(usage_amount, "usage_amount")

    related = sorted(related, key=lambda entry: entry.order)
    for entry in related:
        _validate_amount(entry.amount, f"amount for product {entry.product_id}")
        # Existence only: a related product from another store is not rejected.
        if db.get(Product, entry.product_id) is None:
            raise NotFoundError("Product", entry.product_id)

    used_at = normalize_datetime(date) or utcnow()

    with unit_of_work(db):
        lot = _draw_from_lot(db, product.id, usage_amount)
        usage = Usage(
            store_id=store_id,
            service_type_id=service_type.id,
            product_id=product.id,
            used_lot_id=lot.id,
            user_id=user_id,
            usage_amount=usage_amount,
            default_amount=default_amount,
            nail_length=nail_length,
            is_custom_amount=is_custom_amount,
            is_gel_service=service_type.is_gel_service,
            note=note,
            date=used_at,
        )
        db.add(usage)
        db.flush()

        for entry in related:
            related_lot = _draw_from_lot(db, entry.product_id, entry.amount)
            db.add(
                RelatedProductUsage(
                    usage_id=usage.id,
                    product_id=entry.product_id,
                    used_lot_id=related_lot.id,
                    amount=entry.amount,
                    role=entry.role,
                    order=entry.order,
                )
            )

        bump_counters(db, product, usage_count=1)
        product.last_used = used_at
        log_activity(
            db,
            store_id=store_id,
            user_id=user_id,
            category=ACTIVITY_USAGE,
            action="RECORD",
            metadata={
                "usage_id": usage.id,
                "product_id": product.id,
                "lot_id": lot.id,
                "amount": usage_amount,
                "related_count": len(related),
            },
        )
        db.flush()
        record_monthly_usage(db, service_type.id, usage_amount, used_at)

    logger.info(
        "Recorded usage %s: %s from lot %s with %s related product(s).",
        usage.id,
        usage_amount,
        lot.id,
        len(related),
        extra={"store_id": store_id, "usage_id": usage.id},
    )
    return usage


def list_usages(
    db: Session,
    store_id: int,
    *,
    product_id: Optional[int] = None,
    service_type_id: Optional[int] = None,
    limit: int = 100,
) -> list[Usage]:
    stmt = (
        select(Usage)
        .where(Usage.store_id == store_id)
        .options(selectinload(Usage.related_usages))
        .order_by(Usage.date.desc(), Usage.id.desc())
        .limit(limit)
    )
    if product_id is not None:
        stmt = stmt.where(Usage.product_id == product_id)
    if service_type_id is not None:
        stmt = stmt.where(Usage.service_type_id == service_type_id)
    return list(db.execute(stmt).scalars().all())
