from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InsufficientQuantityError,
    InventoryError,
    NotFoundError,
    OutOfStockError,
)
from app.core.security import Principal, authenticate_request
from app.database.session import get_db

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InsufficientQuantityError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (OutOfStockError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
)


def require_auth(
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    api_key_alt: Optional[str] = Header(None, alias="api-key"),
    authorization: Optional[str] = Header(None),
) -> Optional[Principal]:
    api_key_value = api_key or api_key_alt
    return authenticate_request(
        api_key=api_key_value,
        authorization=authorization,
        require_auth=True,
    )


def require_store_role(*roles: str):
    """Guard a ``/stores/{store_id}/...`` route.

    A staff token must be issued for the store in the path and, when
    ``roles`` is given, carry one of them. API keys act for every store.
    """

    def dependency(
        store_id: int,
        principal: Optional[Principal] = Depends(require_auth),
    ) -> Optional[Principal]:
        if principal is None:
            return None
        if not principal.can_act_for(store_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Token is not valid for this store",
            )
        if roles and not principal.has_role(roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role {} may not perform this action".format(principal.role),
            )
        return principal

    return dependency


def http_error(exc: InventoryError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_dict())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())


__all__ = ["get_db", "http_error", "require_auth", "require_store_role"]
