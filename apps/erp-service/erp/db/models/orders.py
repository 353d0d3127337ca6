import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc, today_utc, Money, Quantity


class Order(Base):
    __tablename__ = 'orders'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(40), nullable=False, unique=True)
    customer_id = Column(UUID(as_uuid=True), ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False)
    order_date = Column(Date, nullable=False, default=today_utc)
    delivery_date = Column(Date, nullable=True)
    # 'pending'|'confirmed'|'in_progress'|'shipped'|'delivered'|'cancelled'
    status = Column(String(20), nullable=False, default='pending')
    subtotal = Column(Money(), nullable=False, default=0)
    tax = Column(Money(), nullable=False, default=0)
    total = Column(Money(), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    customer = relationship('Customer')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.created_at')

    __table_args__ = (
        Index('ix_orders_order_date', 'order_date'),
        Index('ix_orders_customer_id', 'customer_id'),
        Index('ix_orders_status', 'status'),
    )

    @property
    def customer_name(self):
        return self.customer.name if self.customer is not None else None


class OrderItem(Base):
    __tablename__ = 'order_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey('products.id', ondelete='RESTRICT'), nullable=False)
    quantity = Column(Quantity(), nullable=False)
    unit_price = Column(Money(), nullable=False)
    discount = Column(Money(), nullable=False, default=0)
    total = Column(Money(), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    @property
    def product_name(self):
        return self.product.name if self.product is not None else None
