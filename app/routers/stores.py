from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.constants import MANAGEMENT_ROLES
from app.core.exceptions import InventoryError
from app.dependencies import get_db, http_error, require_store_role
from app.schemas.store import StaffCreate, StoreRead, StoreRegistration, StoreRegistrationRead, UserRead
from app.services.store_service import add_staff_member, get_store, register_store

router = APIRouter(prefix="/stores", tags=["Stores"])


@router.post("", response_model=StoreRegistrationRead, status_code=201)
def create_store(payload: StoreRegistration, db: Session = Depends(get_db)):
    try:
        store, owner = register_store(db, **payload.model_dump())
    except InventoryError as exc:
        raise http_error(exc) from exc
    return StoreRegistrationRead(
        store=StoreRead.model_validate(store),
        owner=UserRead.model_validate(owner),
    )


@router.get("/{store_id}", response_model=StoreRead)
def read_store(store_id: int, db: Session = Depends(get_db)):
    try:
        return get_store(db, store_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.post("/{store_id}/staff", response_model=UserRead, status_code=201)
def create_staff(
    store_id: int,
    payload: StaffCreate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role(*MANAGEMENT_ROLES)),
):
    try:
        return add_staff_member(db, store_id=store_id, **payload.model_dump())
    except InventoryError as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
