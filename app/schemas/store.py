from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreRegistration(BaseModel):
    name: str
    owner_email: str
    owner_name: str
    password: str = Field(min_length=8)
    address: Optional[str] = None
    phone: Optional[str] = None


class StaffCreate(BaseModel):
    email: str
    name: str
    password: str = Field(min_length=8)
    role: str = "NAIL_TECHNICIAN"
    created_by: Optional[int] = None


class StoreRead(BaseModel):
    id: int
    name: str
    code: str
    address: Optional[str] = None
    phone: Optional[str] = None
    admin_email: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserRead(BaseModel):
    id: int
    store_id: int
    email: str
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class StoreRegistrationRead(BaseModel):
    store: StoreRead
    owner: UserRead


class TokenRequest(BaseModel):
    email: str
    password: str


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
