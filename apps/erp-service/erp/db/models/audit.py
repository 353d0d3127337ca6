import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class AuditLog(Base):
    __tablename__ = 'audit_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # 'CREATE'|'UPDATE'|'DELETE'
    action = Column(String(10), nullable=False)
    table_name = Column(String(80), nullable=False)
    record_id = Column(String(64), nullable=True)
    old_data = Column(JSONB, nullable=True)
    new_data = Column(JSONB, nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    user = relationship('User')

    __table_args__ = (
        Index('ix_audit_logs_created_at', 'created_at'),
        Index('ix_audit_logs_table_name', 'table_name'),
        Index('ix_audit_logs_user_id_created_at', 'user_id', 'created_at'),
        Index('ix_audit_logs_action', 'action'),
    )

    @property
    def user_email(self):
        return self.user.email if self.user is not None else None

    @property
    def user_name(self):
        return self.user.full_name if self.user is not None else None
