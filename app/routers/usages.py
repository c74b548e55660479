from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.exceptions import InventoryError
from app.dependencies import get_db, http_error, require_store_role
from app.schemas.usage import UsageCreate, UsageRead
from app.services.usage_service import RelatedUsageEntry, list_usages, record_usage

router = APIRouter(prefix="/stores/{store_id}/usages", tags=["Usages"])


@router.post("", response_model=UsageRead, status_code=201)
def create_usage(
    store_id: int,
    payload: UsageCreate,
    db: Session = Depends(get_db),
    _auth=Depends(require_store_role()),
):
    values = payload.model_dump(exclude={"related_products"})
    related = [RelatedUsageEntry(**entry.model_dump()) for entry in payload.related_products]
    try:
        usage = record_usage(db, store_id, related=related, **values)
    except InventoryError as exc:
        raise http_error(exc) from exc
    db.refresh(usage)
    return usage


@router.get("", response_model=List[UsageRead])
def read_usages(
    store_id: int,
    product_id: Optional[int] = Query(None),
    service_type_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_usages(
        db,
        store_id,
        product_id=product_id,
        service_type_id=service_type_id,
        limit=limit,
    )


__all__ = ["router"]
