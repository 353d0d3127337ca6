import uuid
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import reject_null

MaterialCategory = Literal['chemical', 'metal', 'plastic', 'electronic', 'packaging', 'other']
TransactionType = Literal['purchase', 'consumption', 'adjustment', 'return']


class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: str = Field(min_length=1, max_length=80)
    category: str | None = None
    description: str | None = None
    price: float = Field(default=0, ge=0)
    cost: float | None = Field(default=0, ge=0)
    stock: float = 0
    unit: str = 'adet'
    min_stock: float | None = Field(default=0, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    location: str | None = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    sku: str | None = Field(default=None, min_length=1, max_length=80)
    category: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)
    stock: float | None = None
    unit: str | None = None
    min_stock: float | None = Field(default=None, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    location: str | None = None

    @field_validator("name", "sku", "price", "stock", "unit")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class Product(ProductBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RawMaterialBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: str = Field(min_length=1, max_length=80)
    category: MaterialCategory = 'other'
    cost: float = Field(default=0, ge=0)
    stock: float = Field(default=0, ge=0)
    unit: str = 'kg'
    min_stock: float = Field(default=0, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    supplier: str | None = None
    location: str | None = None
    description: str | None = None


class RawMaterialCreate(RawMaterialBase):
    pass


class RawMaterialUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    sku: str | None = Field(default=None, min_length=1, max_length=80)
    category: Optional[MaterialCategory] = None
    cost: float | None = Field(default=None, ge=0)
    stock: float | None = Field(default=None, ge=0)
    unit: str | None = None
    min_stock: float | None = Field(default=None, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    supplier: str | None = None
    location: str | None = None
    description: str | None = None

    @field_validator("name", "sku", "category", "cost", "stock", "unit", "min_stock")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class RawMaterial(RawMaterialBase):
    id: uuid.UUID
    stock_status: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MaterialTransactionCreate(BaseModel):
    transaction_type: TransactionType
    # Signed for adjustments, strictly positive otherwise (checked by the service)
    quantity: float
    unit_cost: float | None = Field(default=None, ge=0)
    reference_type: str | None = None
    reference_id: uuid.UUID | None = None
    notes: str | None = None


class MaterialTransaction(BaseModel):
    id: uuid.UUID
    raw_material_id: uuid.UUID
    transaction_type: str
    quantity: float
    unit_cost: float | None = None
    reference_type: str | None = None
    reference_id: uuid.UUID | None = None
    notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RecipeLineCreate(BaseModel):
    raw_material_id: uuid.UUID
    quantity_per_unit: float = Field(gt=0)
    notes: str | None = None


class RecipeLineUpdate(BaseModel):
    quantity_per_unit: float = Field(gt=0)
    notes: str | None = None


class RecipeLine(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    raw_material_id: uuid.UUID
    material_name: str
    material_sku: str
    unit: str
    unit_cost: float
    quantity_per_unit: float
    line_cost: float
    notes: str | None = None


class ProductRecipe(BaseModel):
    product_id: uuid.UUID
    lines: list[RecipeLine]
    unit_cost: float


class MaterialConsumptionResult(BaseModel):
    order_id: uuid.UUID
    transactions: list[MaterialTransaction]
