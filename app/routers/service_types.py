from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.core.constants import MANAGEMENT_ROLES
from app.core.exceptions import InventoryError
from app.dependencies import get_db, http_error, require_store_role
from app.schemas.service_type import (
    AdjustedAmountRead,
    ServiceTypeCopy,
    ServiceTypeCreate,
    ServiceTypeProductBase,
    ServiceTypeProductRead,
    ServiceTypeRead,
    ServiceTypeUpdate,
)
from app.schemas.usage import MonthlyServiceStatRead
from app.services.service_type_service import (
    copy_service_type,
    create_service_type,
    get_service_type,
    get_service_type_with_products,
    list_service_types,
    remove_product_from_service_type,
    resolve_adjusted_amount,
    update_service_type,
    upsert_service_type_product,
)
from app.services.stats_service import list_monthly_stats

router = APIRouter(prefix="/stores/{store_id}/service-types", tags=["Service Types"])


@router.get("", response_model=List[ServiceTypeRead])
def read_service_types(store_id: int, db: Session = Depends(get_db)):
    return list_service_types(db, store_id, include_products=True)


@router.post("", response_model=ServiceTypeRead, status_code=201)
def register_service_type(
    store_id: int,
    payload: ServiceTypeCreate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    values = payload.model_dump()
    try:
        service_type = create_service_type(db, store_id, **values)
        return get_service_type_with_products(db, store_id, service_type.id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.get("/{service_type_id}", response_model=ServiceTypeRead)
def read_service_type(store_id: int, service_type_id: int, db: Session = Depends(get_db)):
    try:
        return get_service_type_with_products(db, store_id, service_type_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.patch("/{service_type_id}", response_model=ServiceTypeRead)
def edit_service_type(
    store_id: int,
    service_type_id: int,
    payload: ServiceTypeUpdate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        update_service_type(db, store_id, service_type_id, **payload.model_dump(exclude_unset=True))
        return get_service_type_with_products(db, store_id, service_type_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.post("/{service_type_id}/copy", response_model=ServiceTypeRead, status_code=201)
def duplicate_service_type(
    store_id: int,
    service_type_id: int,
    payload: ServiceTypeCopy,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        copied = copy_service_type(db, store_id, service_type_id, **payload.model_dump())
        return get_service_type_with_products(db, store_id, copied.id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.put("/{service_type_id}/products", response_model=ServiceTypeProductRead)
def put_service_type_product(
    store_id: int,
    service_type_id: int,
    payload: ServiceTypeProductBase,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        return upsert_service_type_product(db, store_id, service_type_id, **payload.model_dump())
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.delete("/{service_type_id}/products/{product_id}", status_code=204)
def delete_service_type_product(
    store_id: int,
    service_type_id: int,
    product_id: int,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        remove_product_from_service_type(db, store_id, service_type_id, product_id)
    except InventoryError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


@router.get("/{service_type_id}/adjusted-amount", response_model=AdjustedAmountRead)
def read_adjusted_amount(
    store_id: int,
    service_type_id: int,
    nail_length: str = Query(..., description="SHORT, MEDIUM or LONG"),
    base_amount: Optional[float] = Query(None, gt=0, description="Defaults to the nominal amount"),
    db: Session = Depends(get_db),
):
    try:
        service_type = get_service_type(db, store_id, service_type_id)
    except InventoryError as exc:
        raise http_error(exc) from exc
    if base_amount is None:
        base_amount = service_type.default_usage_amount
    return AdjustedAmountRead(
        service_type_id=service_type.id,
        nail_length=nail_length,
        base_amount=base_amount,
        adjusted_amount=resolve_adjusted_amount(service_type, base_amount, nail_length),
    )


@router.get("/{service_type_id}/monthly-stats", response_model=List[MonthlyServiceStatRead])
def read_monthly_stats(store_id: int, service_type_id: int, db: Session = Depends(get_db)):
    try:
        get_service_type(db, store_id, service_type_id)
    except InventoryError as exc:
        raise http_error(exc) from exc
    return list_monthly_stats(db, service_type_id)


__all__ = ["router"]
