from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.exceptions import InventoryError
from app.dependencies import get_db, http_error
from app.services.dashboard_service import (
    get_dashboard_summary,
    get_future_predictions,
    get_inventory_summary,
    get_usage_statistics,
)

router = APIRouter(prefix="/stores/{store_id}/dashboard", tags=["Dashboard"])


@router.get("/summary")
def dashboard_summary(store_id: int, db: Session = Depends(get_db)):
    return get_dashboard_summary(db, store_id)


@router.get("/inventory")
def inventory_summary(store_id: int, db: Session = Depends(get_db)):
    return get_inventory_summary(db, store_id)


@router.get("/usage")
def usage_statistics(
    store_id: int,
    period: str = Query("month", description="week, month or year"),
    db: Session = Depends(get_db),
):
    try:
        return get_usage_statistics(db, store_id, period)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.get("/predictions")
def future_predictions(
    store_id: int,
    months: int = Query(6, ge=1, le=24, description="Months to forecast"),
    db: Session = Depends(get_db),
):
    return get_future_predictions(db, store_id, months)
