from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    brand: str
    name: str
    category: str
    color_code: Optional[str] = None
    color_name: Optional[str] = None
    price: float = Field(0.0, ge=0)
    capacity: Optional[float] = Field(None, ge=0)
    capacity_unit: Optional[str] = None


class ProductCreate(ProductBase):
    total_quantity: int = Field(0, ge=0)
    min_stock_alert: Optional[int] = Field(None, ge=0)
    actor_id: Optional[int] = None


class ProductUpdate(BaseModel):
    brand: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    color_code: Optional[str] = None
    color_name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[float] = Field(None, ge=0)
    capacity_unit: Optional[str] = None
    min_stock_alert: Optional[int] = Field(None, ge=0)


class ProductRead(ProductBase):
    id: int
    store_id: int
    total_quantity: int
    in_use_quantity: int
    lot_quantity: int
    min_stock_alert: int
    usage_count: int
    last_used: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductLotRead(BaseModel):
    id: int
    product_id: int
    is_in_use: bool
    current_amount: Optional[float] = None
    started_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StockAddRequest(BaseModel):
    actor_id: int
    quantity: int = Field(1, ge=1)
    start_in_use: bool = False
    initial_amount: Optional[float] = Field(None, ge=0)


class StartUsingLotRequest(BaseModel):
    actor_id: int


class StockStatusRead(BaseModel):
    product_id: int
    total_quantity: int
    in_use_quantity: int
    lot_quantity: int
    total_capacity: float
    current_total: float
    is_low_stock: bool


class StockAddResponse(BaseModel):
    product: ProductRead
    lots: List[ProductLotRead]
