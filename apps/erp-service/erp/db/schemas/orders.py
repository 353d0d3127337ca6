import uuid
from datetime import date, datetime
from typing import Literal, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import reject_null

OrderStatus = Literal['pending', 'confirmed', 'in_progress', 'shipped', 'delivered', 'cancelled']


class OrderItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)
    discount: float = Field(default=0, ge=0)


class OrderItem(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None = None
    quantity: float
    unit_price: float
    discount: float
    total: float
    model_config = ConfigDict(from_attributes=True)


class OrderCreate(BaseModel):
    order_number: str | None = Field(default=None, max_length=40)
    customer_id: uuid.UUID
    order_date: date | None = None
    delivery_date: date | None = None
    status: OrderStatus = 'pending'
    notes: str | None = None
    items: List[OrderItemCreate] = Field(min_length=1)


class OrderUpdate(BaseModel):
    customer_id: uuid.UUID | None = None
    order_date: date | None = None
    delivery_date: date | None = None
    status: Optional[OrderStatus] = None
    notes: str | None = None
    # When provided, replaces every existing line
    items: Optional[List[OrderItemCreate]] = Field(default=None, min_length=1)

    @field_validator("customer_id", "order_date", "status", "items")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class Order(BaseModel):
    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    customer_name: str | None = None
    order_date: date
    delivery_date: date | None = None
    status: str
    subtotal: float
    tax: float
    total: float
    notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OrderDetail(Order):
    items: List[OrderItem] = []
