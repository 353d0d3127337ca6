import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import reject_null


class CustomerBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    tax_number: str | None = None
    notes: str | None = None


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    tax_number: str | None = None
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class Customer(CustomerBase):
    id: uuid.UUID
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
