from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VariantBase(BaseModel):
    sku: Optional[str] = Field(None, max_length=100)
    unit_label: str = Field(..., min_length=1, max_length=100)
    cost_price: float = Field(0, ge=0)
    unit_price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    conversion_factor: Optional[float] = Field(None, ge=0.0001)
    barcode: Optional[str] = Field(None, max_length=255)
    is_default: Optional[bool] = None


class VariantCreate(VariantBase):
    pass


class VariantUpdate(BaseModel):
    sku: Optional[str] = Field(None, max_length=100)
    unit_label: Optional[str] = Field(None, min_length=1, max_length=100)
    cost_price: Optional[float] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    conversion_factor: Optional[float] = Field(None, ge=0.0001)
    barcode: Optional[str] = Field(None, max_length=255)
    is_default: Optional[bool] = None


class VariantRead(BaseModel):
    id: int
    product_id: int
    sku: Optional[str] = None
    unit_label: str
    cost_price: float
    unit_price: float
    quantity: int
    conversion_factor: float
    barcode: Optional[str] = None
    is_default: bool
    hidden: bool

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    cost_price: float = Field(0, ge=0)
    unit_price: float = Field(..., ge=0.01)
    quantity: int = Field(..., ge=0)
    unit_of_measurement: str = Field(..., min_length=1, max_length=100)
    category: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = None
    variants: Optional[List[VariantCreate]] = Field(None, min_length=1)

    @field_validator("variants")
    @classmethod
    def _distinct_variant_skus(cls, value):
        if not value:
            return value
        skus = [variant.sku for variant in value if variant.sku]
        if len(skus) != len(set(skus)):
            raise ValueError("variant skus must be distinct")
        return value


class ProductVariantEdit(BaseModel):
    id: int
    unit_label: str = Field(..., min_length=1, max_length=100)
    unit_price: float = Field(..., ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=255)
    is_default: bool = False


class ProductUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    sku: Optional[str] = Field(None, max_length=100)
    unit_price: Optional[float] = Field(None, ge=0)
    unit_of_measurement: Optional[str] = Field(None, min_length=1, max_length=100)
    has_variants: Optional[bool] = None
    variants: List[ProductVariantEdit] = Field(default_factory=list)
    image: Optional[str] = None
    remove_image: bool = False


class ProductRead(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    cost_price: float
    unit_price: float
    quantity: int
    unit_of_measurement: str
    hidden: bool
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    variants: List[VariantRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class StockChange(BaseModel):
    quantity: int = Field(..., ge=1)
    variant_id: Optional[int] = None


class VariantStockChange(BaseModel):
    quantity: int = Field(..., ge=1)
