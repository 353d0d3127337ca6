"""
Audit log repository functions.

Implements create and query functions for audit logs.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, or_

from erp.db import schemas, models


def create_audit_log(db: Session, audit_log: schemas.AuditLogCreate, user_id: Optional[uuid.UUID] = None):
    db_audit_log = models.AuditLog(**audit_log.model_dump(), user_id=user_id)
    db.add(db_audit_log)
    db.commit()
    db.refresh(db_audit_log)
    return db_audit_log


def get_audit_log(db: Session, audit_id: uuid.UUID):
    return (
        db.query(models.AuditLog)
        .options(joinedload(models.AuditLog.user))
        .filter(models.AuditLog.id == audit_id)
        .first()
    )


def get_audit_logs(
    db: Session,
    action: Optional[str] = None,
    table_name: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 200,
):
    query = db.query(models.AuditLog).options(joinedload(models.AuditLog.user))
    if action:
        query = query.filter(models.AuditLog.action == action.upper())
    if table_name:
        query = query.filter(models.AuditLog.table_name == table_name)
    if user_id:
        query = query.filter(models.AuditLog.user_id == user_id)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.AuditLog.table_name).like(term), func.lower(models.AuditLog.record_id).like(term))
        )
    return query.order_by(models.AuditLog.created_at.desc()).offset(skip).limit(limit).all()
