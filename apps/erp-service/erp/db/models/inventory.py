import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc, Money, Quantity


class Product(Base):
    __tablename__ = 'products'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    sku = Column(String(80), nullable=False, unique=True)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Money(), nullable=False, default=0)
    cost = Column(Money(), nullable=True, default=0)
    stock = Column(Quantity(), nullable=False, default=0)
    unit = Column(String(20), nullable=False, default='adet')
    min_stock = Column(Quantity(), nullable=True, default=0)
    max_stock = Column(Quantity(), nullable=True)
    location = Column(String(120), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    recipe_lines = relationship('ProductRecipe', back_populates='product', cascade='all, delete-orphan')


class RawMaterial(Base):
    __tablename__ = 'raw_materials'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    sku = Column(String(80), nullable=False, unique=True)
    # 'chemical'|'metal'|'plastic'|'electronic'|'packaging'|'other'
    category = Column(String(20), nullable=False, default='other')
    cost = Column(Money(), nullable=False, default=0)
    stock = Column(Quantity(), nullable=False, default=0)
    unit = Column(String(20), nullable=False, default='kg')
    min_stock = Column(Quantity(), nullable=False, default=0)
    max_stock = Column(Quantity(), nullable=True)
    supplier = Column(String(200), nullable=True)
    location = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    @property
    def stock_status(self) -> str:
        stock = self.stock or 0
        if stock <= 0:
            return 'out_of_stock'
        if stock < (self.min_stock or 0):
            return 'low'
        return 'normal'


class MaterialTransaction(Base):
    __tablename__ = 'material_transactions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    raw_material_id = Column(UUID(as_uuid=True), ForeignKey('raw_materials.id', ondelete='CASCADE'), nullable=False)
    # 'purchase'|'consumption'|'adjustment'|'return'
    transaction_type = Column(String(20), nullable=False)
    quantity = Column(Quantity(), nullable=False)
    unit_cost = Column(Money(), nullable=True)
    reference_type = Column(String(40), nullable=True)
    reference_id = Column(UUID(as_uuid=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_material_transactions_material_created_at', 'raw_material_id', 'created_at'),
        Index('ix_material_transactions_reference', 'reference_type', 'reference_id'),
    )


class ProductRecipe(Base):
    """Bill of materials line: raw material needed per unit of product."""
    __tablename__ = 'product_recipes'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    raw_material_id = Column(UUID(as_uuid=True), ForeignKey('raw_materials.id', ondelete='CASCADE'), nullable=False)
    quantity_per_unit = Column(Quantity(), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    product = relationship('Product', back_populates='recipe_lines')
    raw_material = relationship('RawMaterial')

    __table_args__ = (
        UniqueConstraint('product_id', 'raw_material_id', name='uq_product_recipes_product_material'),
    )
