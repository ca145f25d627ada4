from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    cart_id: str
    product_variant_id: str
    unit_price_cents: int
    currency: str
    quantity: int
    product_title: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Totals(BaseModel):
    subtotal_cents: int = 0
    currency: str = ""
    item_count: int = 0


class CartOut(BaseModel):
    id: str
    customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[CartItemOut] = Field(default_factory=list)
    totals: Totals = Field(default_factory=Totals)


class AddItemIn(BaseModel):
    variant_id: str
    quantity: int


class UpdateItemIn(BaseModel):
    quantity: int
