from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.constants import MANAGEMENT_ROLES
from app.core.exceptions import InventoryError
from app.dependencies import get_db, http_error, require_store_role
from app.schemas.product import (
    ProductCreate,
    ProductLotRead,
    ProductRead,
    ProductUpdate,
    StartUsingLotRequest,
    StockAddRequest,
    StockAddResponse,
    StockStatusRead,
)
from app.services.product_service import (
    add_stock,
    create_product,
    get_product,
    get_stock_status,
    list_lots,
    list_products,
    start_using_lot,
    update_product,
)

router = APIRouter(prefix="/stores/{store_id}", tags=["Products"])


@router.get("/products", response_model=List[ProductRead])
def read_products(
    store_id: int,
    category: Optional[str] = Query(None, description="Product category"),
    brand: Optional[str] = Query(None, description="Brand name"),
    db: Session = Depends(get_db),
):
    return list_products(db, store_id, category=category, brand=brand)


@router.post("/products", response_model=ProductRead, status_code=201)
def register_product(
    store_id: int,
    payload: ProductCreate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        return create_product(db, store_id, **payload.model_dump())
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.get("/products/{product_id}", response_model=ProductRead)
def read_product(store_id: int, product_id: int, db: Session = Depends(get_db)):
    try:
        return get_product(db, store_id, product_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.patch("/products/{product_id}", response_model=ProductRead)
def edit_product(
    store_id: int,
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        return update_product(db, store_id, product_id, **payload.model_dump(exclude_unset=True))
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.get("/products/{product_id}/lots", response_model=List[ProductLotRead])
def read_lots(
    store_id: int,
    product_id: int,
    in_use: Optional[bool] = Query(None, description="Filter by in-use state"),
    db: Session = Depends(get_db),
):
    try:
        return list_lots(db, store_id, product_id, in_use=in_use)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.get("/products/{product_id}/stock", response_model=StockStatusRead)
def read_stock_status(store_id: int, product_id: int, db: Session = Depends(get_db)):
    try:
        return get_stock_status(db, store_id, product_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.post("/products/{product_id}/stock", response_model=StockAddResponse, status_code=201)
def add_product_stock(
    store_id: int,
    product_id: int,
    payload: StockAddRequest,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        lots = add_stock(db, store_id, product_id, **payload.model_dump())
        product = get_product(db, store_id, product_id)
    except InventoryError as exc:
        raise http_error(exc) from exc
    return StockAddResponse(
        product=ProductRead.model_validate(product),
        lots=[ProductLotRead.model_validate(lot) for lot in lots],
    )


@router.post("/lots/{lot_id}/start", response_model=ProductLotRead)
def start_lot(
    store_id: int,
    lot_id: int,
    payload: StartUsingLotRequest,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role()),
):
    try:
        return start_using_lot(db, store_id, lot_id, actor_id=payload.actor_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
