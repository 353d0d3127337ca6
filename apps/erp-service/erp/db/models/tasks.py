import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Task(Base):
    __tablename__ = 'tasks'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    # 'pending'|'in_progress'|'completed'|'cancelled'
    status = Column(String(20), nullable=False, default='pending')
    # 1 (low) .. 5 (critical)
    priority = Column(Integer, nullable=False, default=2)
    due_date = Column(DateTime(timezone=True), nullable=True)
    production_order_id = Column(UUID(as_uuid=True), ForeignKey('production_orders.id', ondelete='SET NULL'), nullable=True)
    production_process_id = Column(UUID(as_uuid=True), ForeignKey('production_processes.id', ondelete='SET NULL'), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    creator = relationship('User', foreign_keys=[created_by])
    assignments = relationship('TaskAssignment', back_populates='task', cascade='all, delete-orphan')

    __table_args__ = (
        Index('ix_tasks_status', 'status'),
        Index('ix_tasks_created_by', 'created_by'),
        Index('ix_tasks_production_process_id', 'production_process_id'),
    )


class TaskAssignment(Base):
    __tablename__ = 'task_assignments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    assigned_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    assigned_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # 'pending'|'accepted'|'rejected'|'completed'
    status = Column(String(20), nullable=False, default='pending')
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    task = relationship('Task', back_populates='assignments')
    assignee = relationship('User', foreign_keys=[assigned_to])

    __table_args__ = (
        UniqueConstraint('task_id', 'assigned_to', name='uq_task_assignments_task_user'),
        Index('ix_task_assignments_assigned_to', 'assigned_to'),
    )

    @property
    def assignee_name(self):
        if self.assignee is None:
            return None
        return self.assignee.full_name or self.assignee.email

    @property
    def assignee_email(self):
        return self.assignee.email if self.assignee is not None else None
