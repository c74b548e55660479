from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RelatedUsageCreate(BaseModel):
    product_id: int
    amount: float = Field(gt=0)
    role: Optional[str] = None
    order: int = 0


class UsageCreate(BaseModel):
    product_id: int
    service_type_id: int
    nail_length: str
    user_id: int
    usage_amount: Optional[float] = Field(None, gt=0)
    is_custom_amount: bool = False
    related_products: List[RelatedUsageCreate] = Field(default_factory=list)
    note: Optional[str] = None
    date: Optional[datetime] = None


class RelatedUsageRead(BaseModel):
    id: int
    product_id: int
    used_lot_id: Optional[int] = None
    amount: float
    role: Optional[str] = None
    order: int

    model_config = ConfigDict(from_attributes=True)


class UsageRead(BaseModel):
    id: int
    store_id: int
    service_type_id: int
    product_id: int
    used_lot_id: Optional[int] = None
    user_id: Optional[int] = None
    usage_amount: float
    default_amount: Optional[float] = None
    nail_length: str
    is_custom_amount: bool
    is_gel_service: bool
    note: Optional[str] = None
    date: datetime
    related_usages: List[RelatedUsageRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MonthlyServiceStatRead(BaseModel):
    service_type_id: int
    year: int
    month: int
    total_usage: float
    usage_count: int
    average_usage: float
    seasonal_factor: Optional[float] = None
    predicted_usage: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)
