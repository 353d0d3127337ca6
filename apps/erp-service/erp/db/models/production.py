import uuid
from sqlalchemy import Column, String, Text, Integer, Date, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc, Quantity


class ProductionOrder(Base):
    __tablename__ = 'production_orders'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(40), nullable=False, unique=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Quantity(), nullable=False)
    unit = Column(String(20), nullable=False, default='adet')
    customer_id = Column(UUID(as_uuid=True), ForeignKey('customers.id', ondelete='SET NULL'), nullable=True)
    customer_name = Column(String(200), nullable=True)
    # 'planned'|'in_production'|'quality_check'|'completed'|'on_hold'
    status = Column(String(20), nullable=False, default='planned')
    priority = Column(Integer, nullable=False, default=0)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    completed_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    processes = relationship(
        'ProductionProcess',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='ProductionProcess.sequence_order',
    )

    __table_args__ = (
        Index('ix_production_orders_status', 'status'),
        Index('ix_production_orders_created_at', 'created_at'),
    )


class ProductionProcess(Base):
    __tablename__ = 'production_processes'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey('production_orders.id', ondelete='CASCADE'), nullable=False)
    process_name = Column(String(200), nullable=False)
    sequence_order = Column(Integer, nullable=False, default=1)
    assigned_department = Column(UUID(as_uuid=True), ForeignKey('departments.id', ondelete='SET NULL'), nullable=True)
    # shares the task status vocabulary
    status = Column(String(20), nullable=False, default='pending')
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    order = relationship('ProductionOrder', back_populates='processes')

    __table_args__ = (
        Index('ix_production_processes_order_sequence', 'order_id', 'sequence_order'),
        Index('ix_production_processes_department', 'assigned_department'),
    )
