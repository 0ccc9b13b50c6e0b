from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LineItem(BaseModel):
    product_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    purchase_date: Optional[date] = None


class CustomerProductRead(LineItem):
    id: int
    customer_id: int

    model_config = ConfigDict(from_attributes=True)


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=15)
    purchase_date: datetime
    products: List[LineItem]


class CustomerAppend(BaseModel):
    products: List[LineItem]


class CustomerRead(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    purchase_date: datetime
    products: List[CustomerProductRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PurchaseCustomer(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=15)


class PurchaseLineItem(LineItem):
    product_id: int
    variant_id: int


class PurchaseCreate(BaseModel):
    customer_id: Optional[int] = None
    customer: Optional[PurchaseCustomer] = None
    purchase_date: Optional[datetime] = None
    amount_paid: float = Field(..., ge=0)
    products: List[PurchaseLineItem] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _customer_required(self):
        if self.customer_id is None and self.customer is None:
            raise ValueError("customer.name is required when customer_id is not present")
        return self


class PurchaseRead(BaseModel):
    reference: str
    customer: CustomerRead
    items: int
