import uuid
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Report(Base):
    __tablename__ = 'reports'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(300), nullable=False)
    # 'sales'|'production'|'customer'|'financial'
    report_type = Column(String(20), nullable=False)
    # 'pdf'|'excel'|'csv'
    report_format = Column(String(10), nullable=False, default='pdf')
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    file_path = Column(String(500), nullable=True)
    file_size = Column(Integer, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_reports_created_by_created_at', 'created_by', 'created_at'),
        Index('ix_reports_report_type', 'report_type'),
    )
