import uuid
from datetime import date, datetime
from typing import Literal, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import reject_null

ProductionStatus = Literal['planned', 'in_production', 'quality_check', 'completed', 'on_hold']
ProcessStatus = Literal['pending', 'in_progress', 'completed', 'cancelled']


class ProductionOrderBase(BaseModel):
    product_name: str = Field(min_length=1, max_length=200)
    quantity: float = Field(gt=0)
    unit: str = 'adet'
    customer_id: uuid.UUID | None = None
    customer_name: str | None = None
    priority: int = Field(default=0, ge=0, le=5)
    start_date: date | None = None
    due_date: date | None = None
    notes: str | None = None


class ProductionOrderCreate(ProductionOrderBase):
    order_number: str | None = Field(default=None, max_length=40)


class ProductionOrderUpdate(BaseModel):
    product_name: str | None = Field(default=None, min_length=1, max_length=200)
    quantity: float | None = Field(default=None, gt=0)
    unit: str | None = None
    customer_id: uuid.UUID | None = None
    customer_name: str | None = None
    priority: int | None = Field(default=None, ge=0, le=5)
    start_date: date | None = None
    due_date: date | None = None
    notes: str | None = None

    @field_validator("product_name", "quantity", "unit", "priority")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class ProductionStatusUpdate(BaseModel):
    status: ProductionStatus


class ProductionOrder(ProductionOrderBase):
    id: uuid.UUID
    order_number: str
    status: str
    completed_date: date | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProductionProcessCreate(BaseModel):
    process_name: str = Field(min_length=1, max_length=200)
    sequence_order: int = Field(default=1, ge=1)
    assigned_department: uuid.UUID | None = None
    description: str | None = None
    notes: str | None = None


class ProductionProcessUpdate(BaseModel):
    process_name: str | None = Field(default=None, min_length=1, max_length=200)
    sequence_order: int | None = Field(default=None, ge=1)
    assigned_department: uuid.UUID | None = None
    status: Optional[ProcessStatus] = None
    description: str | None = None
    notes: str | None = None

    @field_validator("process_name", "sequence_order", "status")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class ProductionProcess(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    process_name: str
    sequence_order: int
    assigned_department: uuid.UUID | None = None
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    description: str | None = None
    notes: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProductionOrderDetail(ProductionOrder):
    processes: List[ProductionProcess] = []
