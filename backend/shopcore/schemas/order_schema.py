from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    order_id: str
    product_variant_id: str
    unit_price_cents: int
    currency: str
    quantity: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    number: str
    status: str
    currency: str
    subtotal_cents: int
    shipping_cents: int
    tax_cents: int
    total_cents: int
    customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = Field(default_factory=list)


class OrderMetrics(BaseModel):
    total_orders: int = 0
    pending_payment: int = 0
    paid: int = 0
    cancelled: int = 0


class CheckoutOut(BaseModel):
    order_id: str
    order_number: str
    status: str
    total_cents: int
    currency: str
    checkout_url: str
