import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.constants import ACTIVITY_PRODUCT, ACTIVITY_STOCK, PRODUCT_CATEGORIES
from app.core.dates import utcnow
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.database.session import unit_of_work
from app.models.product import Product, ProductLot
from app.services.activity_service import log_activity
from app.services.store_service import get_store, require_user

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "brand",
    "name",
    "color_code",
    "color_name",
    "category",
    "price",
    "capacity",
    "capacity_unit",
    "min_stock_alert",
)


def _validate_category(category: str) -> None:
    if category not in PRODUCT_CATEGORIES:
        raise ValidationError(f"Unknown product category {category}")


def bump_counters(db: Session, product: Product, **deltas) -> None:
    """Apply counter deltas in SQL so concurrent writers never lose an increment."""
    values = {
        getattr(Product, name): getattr(Product, name) + delta
        for name, delta in deltas.items()
        if delta
    }
    if not values:
        return
    db.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(values)
        .execution_options(synchronize_session=False)
    )
    db.expire(product, list(deltas))


def get_product(db: Session, store_id: int, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None or product.store_id != store_id:
        raise NotFoundError("Product", product_id)
    return product


def get_lot(db: Session, store_id: int, lot_id: int) -> ProductLot:
    lot = db.get(ProductLot, lot_id)
    if lot is None or lot.product.store_id != store_id:
        raise NotFoundError("ProductLot", lot_id)
    return lot


def list_products(
    db: Session,
    store_id: int,
    *,
    category: Optional[str] = None,
    brand: Optional[str] = None,
) -> list[Product]:
    stmt = select(Product).where(Product.store_id == store_id)
    if category:
        stmt = stmt.where(Product.category == category)
    if brand:
        stmt = stmt.where(Product.brand == brand)
    stmt = stmt.order_by(Product.brand, Product.name, Product.id)
    return list(db.execute(stmt).scalars().all())


def list_lots(db: Session, store_id: int, product_id: int, *, in_use: Optional[bool] = None) -> list[ProductLot]:
    get_product(db, store_id, product_id)
    stmt = select(ProductLot).where(ProductLot.product_id == product_id)
    if in_use is not None:
        stmt = stmt.where(ProductLot.is_in_use.is_(in_use))
    return list(db.execute(stmt.order_by(ProductLot.id)).scalars().all())


def create_product(
    db: Session,
    store_id: int,
    *,
    brand: str,
    name: str,
    category: str,
    price: float = 0.0,
    capacity: Optional[float] = None,
    capacity_unit: Optional[str] = None,
    color_code: Optional[str] = None,
    color_name: Optional[str] = None,
    total_quantity: int = 0,
    min_stock_alert: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Product:
    """Register a product and one unused lot per unit of ``total_quantity``."""
    get_store(db, store_id)
    _validate_category(category)
    if total_quantity < 0:
        raise ValidationError("total_quantity must be non-negative")
    if min_stock_alert is None:
        min_stock_alert = get_settings().LOW_STOCK_DEFAULT

    with unit_of_work(db):
        product = Product(
            store_id=store_id,
            brand=brand,
            name=name,
            category=category,
            price=price,
            capacity=capacity,
            capacity_unit=capacity_unit,
            color_code=color_code,
            color_name=color_name,
            total_quantity=total_quantity,
            in_use_quantity=0,
            lot_quantity=total_quantity,
            min_stock_alert=min_stock_alert,
        )
        db.add(product)
        db.flush()
        db.add_all(
            ProductLot(product_id=product.id, is_in_use=False)
            for _ in range(total_quantity)
        )
        log_activity(
            db,
            store_id=store_id,
            user_id=actor_id,
            category=ACTIVITY_PRODUCT,
            action="CREATE",
            metadata={"product_id": product.id, "total_quantity": total_quantity},
        )

    logger.info(
        "Created product %s with %s lots.",
        product.id,
        total_quantity,
        extra={"store_id": store_id, "product_id": product.id},
    )
    return product


def update_product(db: Session, store_id: int, product_id: int, **changes) -> Product:
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            "Fields cannot be edited directly: {}".format(", ".join(sorted(unknown)))
        )
    if changes.get("category") is not None:
        _validate_category(changes["category"])

    product = get_product(db, store_id, product_id)
    with unit_of_work(db):
        for field, value in changes.items():
            if value is not None:
                setattr(product, field, value)
    return product


def add_stock(
    db: Session,
    store_id: int,
    product_id: int,
    *,
    actor_id: int,
    quantity: int = 1,
    start_in_use: bool = False,
    initial_amount: Optional[float] = None,
) -> list[ProductLot]:
    """Add ``quantity`` lots and move the counters with them in one commit."""
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")
    if initial_amount is not None and initial_amount < 0:
        raise ValidationError("initial_amount must be non-negative")

    product = get_product(db, store_id, product_id)
    require_user(db, actor_id, store_id)

    now = utcnow()
    with unit_of_work(db):
        if start_in_use:
            amount = initial_amount if initial_amount is not None else (product.capacity or 0.0)
            lots = [
                ProductLot(
                    product_id=product.id,
                    is_in_use=True,
                    current_amount=amount,
                    started_at=now,
                )
                for _ in range(quantity)
            ]
            bump_counters(db, product, total_quantity=quantity, in_use_quantity=quantity)
        else:
            lots = [ProductLot(product_id=product.id, is_in_use=False) for _ in range(quantity)]
            bump_counters(db, product, total_quantity=quantity, lot_quantity=quantity)
        db.add_all(lots)
        db.flush()
        log_activity(
            db,
            store_id=store_id,
            user_id=actor_id,
            category=ACTIVITY_STOCK,
            action="ADD",
            metadata={
                "product_id": product.id,
                "quantity": quantity,
                "start_in_use": start_in_use,
            },
        )

    logger.info(
        "Added %s lot(s) to product %s (in use: %s).",
        quantity,
        product.id,
        start_in_use,
        extra={"store_id": store_id, "product_id": product.id},
    )
    return lots


def start_using_lot(db: Session, store_id: int, lot_id: int, *, actor_id: int) -> ProductLot:
    """Open an unused lot: it gets the product's full capacity as remaining amount."""
    lot = get_lot(db, store_id, lot_id)
    require_user(db, actor_id, store_id)
    if lot.is_in_use:
        logger.warning("Lot %s is already in use.", lot_id, extra={"lot_id": lot_id})
        raise ConflictError(f"Lot {lot_id} is already in use")

    product = lot.product
    with unit_of_work(db):
        result = db.execute(
            update(ProductLot)
            .where(ProductLot.id == lot.id, ProductLot.is_in_use.is_(False))
            .values(
                is_in_use=True,
                current_amount=product.capacity if product.capacity is not None else 0.0,
                started_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Lot {lot_id} is already in use")
        bump_counters(db, product, lot_quantity=-1, in_use_quantity=1)
        log_activity(
            db,
            store_id=store_id,
            user_id=actor_id,
            category=ACTIVITY_STOCK,
            action="START_USE",
            metadata={"product_id": product.id, "lot_id": lot.id},
        )

    db.refresh(lot)
    logger.info("Started using lot %s.", lot.id, extra={"store_id": store_id, "lot_id": lot.id})
    return lot


def get_stock_status(db: Session, store_id: int, product_id: int) -> dict:
    product = get_product(db, store_id, product_id)
    capacity = product.capacity or 0.0

    in_use_remaining = db.execute(
        select(func.coalesce(func.sum(ProductLot.current_amount), 0.0)).where(
            ProductLot.product_id == product.id,
            ProductLot.is_in_use.is_(True),
        )
    ).scalar_one()
    unused_lots = db.execute(
        select(func.count(ProductLot.id)).where(
            ProductLot.product_id == product.id,
            ProductLot.is_in_use.is_(False),
        )
    ).scalar_one()

    return {
        "product_id": product.id,
        "total_quantity": product.total_quantity,
        "in_use_quantity": product.in_use_quantity,
        "lot_quantity": product.lot_quantity,
        "total_capacity": capacity * product.total_quantity,
        "current_total": float(in_use_remaining) + capacity * unused_lots,
        "is_low_stock": product.lot_quantity <= product.min_stock_alert,
    }
