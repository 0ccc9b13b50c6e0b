from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.product import ProductRead


class DamagedProductBase(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., ge=1)
    reason: str = Field(..., min_length=1, max_length=255)
    action_taken: Optional[str] = Field(None, max_length=255)
    date: date_type
    logged_at: Optional[datetime] = None
    unit_of_measurement: str = Field(..., min_length=1, max_length=50)
    variant_id: Optional[int] = None


class DamagedProductCreate(DamagedProductBase):
    pass


class DamagedProductUpdate(BaseModel):
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    product_name: Optional[str] = Field(None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(None, ge=1)
    reason: Optional[str] = Field(None, min_length=1, max_length=255)
    action_taken: Optional[str] = Field(None, max_length=255)
    date: Optional[date_type] = None
    logged_at: Optional[datetime] = None
    unit_of_measurement: Optional[str] = Field(None, min_length=1, max_length=50)
    variant_id: Optional[int] = None


class DamagedProductRead(DamagedProductBase):
    id: int
    refunded: bool
    refunded_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DamagedProductStats(BaseModel):
    total_damaged: int
    recent_damages: List[DamagedProductRead]


class DamageDeductRequest(BaseModel):
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    variant_id: Optional[int] = None


class DamageDeductResult(BaseModel):
    message: str
    product: Optional[ProductRead] = None
