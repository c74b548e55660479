from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import InventoryError
from app.core.security import issue_token
from app.dependencies import get_db, http_error
from app.schemas.store import TokenRead, TokenRequest, UserRead
from app.services.store_service import authenticate_user

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/token", response_model=TokenRead)
def create_token(payload: TokenRequest, db: Session = Depends(get_db)):
    if not get_settings().JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token auth is not configured",
        )
    try:
        user = authenticate_user(db, payload.email, payload.password)
    except InventoryError as exc:
        raise http_error(exc) from exc
    token = issue_token(user_id=user.id, store_id=user.store_id, role=user.role)
    return TokenRead(access_token=token, user=UserRead.model_validate(user))


__all__ = ["router"]
