import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.constants import (
    ACTIVITY_SERVICE_TYPE,
    DEFAULT_LONG_LENGTH_RATE,
    DEFAULT_MEDIUM_LENGTH_RATE,
    DEFAULT_SHORT_LENGTH_RATE,
    DEFAULT_USAGE_AMOUNT,
    PRODUCT_CATEGORIES,
)
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.database.session import unit_of_work
from app.models.product import Product
from app.models.service_type import ServiceType, ServiceTypeProduct
from app.services.activity_service import log_activity
from app.services.store_service import get_store

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = (
    "default_usage_amount",
    "product_type",
    "is_gel_service",
    "requires_base",
    "requires_top",
    "short_length_rate",
    "medium_length_rate",
    "long_length_rate",
    "allow_custom_amount",
    "design_variant",
    "design_usage_rate",
)


def _round_half_up(value: float, exponent: str) -> Decimal:
    # Decimal(float) keeps the exact binary value, so ties resolve the same
    # way as a half-up round of the stored double.
    return Decimal(value).quantize(Decimal(exponent), rounding=ROUND_HALF_UP)


def resolve_adjusted_amount(service_type, base_amount: float, nail_length: Optional[str]) -> float:
    """Scale a nominal amount by the nail-length rate and design multiplier.

    The rate is rounded to a whole percent before it is applied and the final
    amount is rounded to two decimals.
    """
    rates = {
        "SHORT": service_type.short_length_rate,
        "MEDIUM": service_type.medium_length_rate,
        "LONG": service_type.long_length_rate,
    }
    rate = rates.get(nail_length, 100)

    if service_type.design_usage_rate:
        rate = int(_round_half_up(rate * service_type.design_usage_rate, "1"))

    return float(_round_half_up(base_amount * (rate / 100), "0.01"))


def _name_taken(db: Session, store_id: int, name: str) -> bool:
    existing = db.execute(
        select(ServiceType.id).where(ServiceType.store_id == store_id, ServiceType.name == name)
    ).first()
    return existing is not None


def _require_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def get_service_type(db: Session, store_id: int, service_type_id: int) -> ServiceType:
    service_type = db.get(ServiceType, service_type_id)
    if service_type is None or service_type.store_id != store_id:
        raise NotFoundError("ServiceType", service_type_id)
    return service_type


def create_service_type(
    db: Session,
    store_id: int,
    *,
    name: str,
    product_type: str,
    default_usage_amount: float = DEFAULT_USAGE_AMOUNT,
    is_gel_service: bool = False,
    requires_base: bool = False,
    requires_top: bool = False,
    short_length_rate: int = DEFAULT_SHORT_LENGTH_RATE,
    medium_length_rate: int = DEFAULT_MEDIUM_LENGTH_RATE,
    long_length_rate: int = DEFAULT_LONG_LENGTH_RATE,
    allow_custom_amount: bool = False,
    design_variant: Optional[str] = None,
    design_usage_rate: Optional[float] = None,
    products: Iterable[dict] = (),
    actor_id: Optional[int] = None,
) -> ServiceType:
    get_store(db, store_id)
    if product_type not in PRODUCT_CATEGORIES:
        raise ValidationError(f"Unknown product type {product_type}")
    if _name_taken(db, store_id, name):
        raise ConflictError(f'Service type with name "{name}" already exists in this store')

    products = list(products)
    for entry in products:
        _require_product(db, entry["product_id"])

    with unit_of_work(db):
        service_type = ServiceType(
            store_id=store_id,
            name=name,
            product_type=product_type,
            default_usage_amount=default_usage_amount,
            is_gel_service=is_gel_service,
            requires_base=requires_base,
            requires_top=requires_top,
            short_length_rate=short_length_rate,
            medium_length_rate=medium_length_rate,
            long_length_rate=long_length_rate,
            allow_custom_amount=allow_custom_amount,
            design_variant=design_variant,
            design_usage_rate=design_usage_rate,
        )
        db.add(service_type)
        db.flush()
        for entry in products:
            db.add(
                ServiceTypeProduct(
                    service_type_id=service_type.id,
                    product_id=entry["product_id"],
                    usage_amount=entry["usage_amount"],
                    is_required=entry.get("is_required", True),
                    product_role=entry.get("product_role"),
                    order=entry.get("order", 0),
                )
            )
        log_activity(
            db,
            store_id=store_id,
            user_id=actor_id,
            category=ACTIVITY_SERVICE_TYPE,
            action="CREATE",
            metadata={"service_type_id": service_type.id, "name": name},
        )

    db.refresh(service_type)
    logger.info("Created service type %s (%s).", service_type.id, name, extra={"store_id": store_id})
    return service_type


def update_service_type(db: Session, store_id: int, service_type_id: int, **changes) -> ServiceType:
    unknown = set(changes) - set(_SCALAR_FIELDS) - {"name"}
    if unknown:
        raise ValidationError("Unknown service type fields: {}".format(", ".join(sorted(unknown))))

    service_type = get_service_type(db, store_id, service_type_id)
    new_name = changes.get("name")
    if new_name and new_name != service_type.name and _name_taken(db, store_id, new_name):
        raise ConflictError(f'Service type with name "{new_name}" already exists in this store')

    with unit_of_work(db):
        for field, value in changes.items():
            if value is not None:
                setattr(service_type, field, value)
    return service_type


def upsert_service_type_product(
    db: Session,
    store_id: int,
    service_type_id: int,
    *,
    product_id: int,
    usage_amount: float,
    is_required: bool = True,
    product_role: Optional[str] = None,
    order: int = 0,
) -> ServiceTypeProduct:
    service_type = get_service_type(db, store_id, service_type_id)
    _require_product(db, product_id)

    association = db.execute(
        select(ServiceTypeProduct).where(
            ServiceTypeProduct.service_type_id == service_type.id,
            ServiceTypeProduct.product_id == product_id,
        )
    ).scalars().first()

    with unit_of_work(db):
        if association is None:
            association = ServiceTypeProduct(
                service_type_id=service_type.id,
                product_id=product_id,
            )
            db.add(association)
        association.usage_amount = usage_amount
        association.is_required = is_required
        association.product_role = product_role
        association.order = order

    db.expire(service_type, ["products"])
    return association


def remove_product_from_service_type(
    db: Session, store_id: int, service_type_id: int, product_id: int
) -> None:
    service_type = get_service_type(db, store_id, service_type_id)
    association = db.execute(
        select(ServiceTypeProduct).where(
            ServiceTypeProduct.service_type_id == service_type.id,
            ServiceTypeProduct.product_id == product_id,
        )
    ).scalars().first()
    if association is None:
        raise NotFoundError("ServiceTypeProduct", f"{service_type_id}/{product_id}")

    with unit_of_work(db):
        db.delete(association)
    db.expire(service_type, ["products"])


def copy_service_type(
    db: Session,
    store_id: int,
    source_id: int,
    *,
    new_name: str,
    design_variant: Optional[str] = None,
    design_usage_rate: Optional[float] = None,
    actor_id: Optional[int] = None,
) -> ServiceType:
    """Duplicate a service type and its ordered product list under a new name."""
    source = get_service_type(db, store_id, source_id)
    if _name_taken(db, source.store_id, new_name):
        raise ConflictError(f'Service type with name "{new_name}" already exists in this store')

    with unit_of_work(db):
        values = {field: getattr(source, field) for field in _SCALAR_FIELDS}
        values["design_variant"] = design_variant or source.design_variant
        values["design_usage_rate"] = design_usage_rate or source.design_usage_rate
        copied = ServiceType(store_id=source.store_id, name=new_name, **values)
        db.add(copied)
        db.flush()
        for association in source.products:
            db.add(
                ServiceTypeProduct(
                    service_type_id=copied.id,
                    product_id=association.product_id,
                    usage_amount=association.usage_amount,
                    is_required=association.is_required,
                    product_role=association.product_role,
                    order=association.order,
                )
            )
        log_activity(
            db,
            store_id=store_id,
            user_id=actor_id,
            category=ACTIVITY_SERVICE_TYPE,
            action="COPY",
            metadata={"source_id": source.id, "service_type_id": copied.id},
        )

    db.refresh(copied)
    logger.info("Copied service type %s to %s (%s).", source.id, copied.id, new_name)
    return copied


def get_service_type_with_products(db: Session, store_id: int, service_type_id: int) -> ServiceType:
    service_type = db.execute(
        select(ServiceType)
        .where(ServiceType.id == service_type_id, ServiceType.store_id == store_id)
        .options(selectinload(ServiceType.products).selectinload(ServiceTypeProduct.product))
    ).scalars().first()
    if service_type is None:
        raise NotFoundError("ServiceType", service_type_id)
    return service_type


def list_service_types(db: Session, store_id: int, include_products: bool = False) -> list[ServiceType]:
    stmt = select(ServiceType).where(ServiceType.store_id == store_id).order_by(ServiceType.name)
    if include_products:
        stmt = stmt.options(
            selectinload(ServiceType.products).selectinload(ServiceTypeProduct.product)
        )
    return list(db.execute(stmt).scalars().all())
