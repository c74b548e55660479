from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceTypeProductBase(BaseModel):
    product_id: int
    usage_amount: float = Field(gt=0)
    is_required: bool = True
    product_role: Optional[str] = None
    order: int = 0


class ServiceTypeProductRead(ServiceTypeProductBase):
    id: int
    service_type_id: int

    model_config = ConfigDict(from_attributes=True)


class ServiceTypeCreate(BaseModel):
    name: str
    product_type: str
    default_usage_amount: float = Field(0.5, gt=0)
    is_gel_service: bool = False
    requires_base: bool = False
    requires_top: bool = False
    short_length_rate: int = Field(80, gt=0)
    medium_length_rate: int = Field(100, gt=0)
    long_length_rate: int = Field(130, gt=0)
    allow_custom_amount: bool = False
    design_variant: Optional[str] = None
    design_usage_rate: Optional[float] = Field(None, gt=0)
    products: List[ServiceTypeProductBase] = Field(default_factory=list)
    actor_id: Optional[int] = None


class ServiceTypeUpdate(BaseModel):
    name: Optional[str] = None
    product_type: Optional[str] = None
    default_usage_amount: Optional[float] = Field(None, gt=0)
    is_gel_service: Optional[bool] = None
    requires_base: Optional[bool] = None
    requires_top: Optional[bool] = None
    short_length_rate: Optional[int] = Field(None, gt=0)
    medium_length_rate: Optional[int] = Field(None, gt=0)
    long_length_rate: Optional[int] = Field(None, gt=0)
    allow_custom_amount: Optional[bool] = None
    design_variant: Optional[str] = None
    design_usage_rate: Optional[float] = Field(None, gt=0)


class ServiceTypeCopy(BaseModel):
    new_name: str
    design_variant: Optional[str] = None
    design_usage_rate: Optional[float] = Field(None, gt=0)
    actor_id: Optional[int] = None


class ServiceTypeRead(BaseModel):
    id: int
    store_id: int
    name: str
    product_type: str
    default_usage_amount: float
    is_gel_service: bool
    requires_base: bool
    requires_top: bool
    short_length_rate: int
    medium_length_rate: int
    long_length_rate: int
    allow_custom_amount: bool
    design_variant: Optional[str] = None
    design_usage_rate: Optional[float] = None
    products: List[ServiceTypeProductRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class AdjustedAmountRead(BaseModel):
    service_type_id: int
    nail_length: str
    base_amount: float
    adjusted_amount: float
