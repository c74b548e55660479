"""Typed errors raised by the inventory services.

Every error carries a machine-readable ``code`` and the identifiers needed to
act on it, so callers catch by type instead of matching message text.

    InventoryError
    +-- NotFoundError
    +-- ConflictError
    +-- InsufficientQuantityError
    +-- OutOfStockError
    +-- ValidationError
    +-- AuthenticationError
"""


class InventoryError(Exception):
    code = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(InventoryError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(InventoryError):
    code = "CONFLICT"


class InsufficientQuantityError(InventoryError):
    code = "INSUFFICIENT_QUANTITY"

    def __init__(self, lot_id: int, requested: float, available: float | None):
        super().__init__(
            f"Lot {lot_id} has {available if available is not None else 0} remaining, "
            f"{requested} requested"
        )
        self.lot_id = lot_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update(lot_id=self.lot_id, requested=self.requested, available=self.available)
        return payload


class OutOfStockError(InventoryError):
    code = "OUT_OF_STOCK"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} has no lot in use")
        self.product_id = product_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["product_id"] = self.product_id
        return payload


class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"


class AuthenticationError(InventoryError):
    code = "AUTHENTICATION_FAILED"


__all__ = [
    "AuthenticationError",
    "ConflictError",
    "InsufficientQuantityError",
    "InventoryError",
    "NotFoundError",
    "OutOfStockError",
    "ValidationError",
]
