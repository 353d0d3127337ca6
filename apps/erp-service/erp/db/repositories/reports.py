"""
Report metadata repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from erp.db import models


def create_report(db: Session, **fields):
    db_report = models.Report(**fields)
    db.add(db_report)
    db.commit()
    db.refresh(db_report)
    return db_report


def get_report(db: Session, report_id: uuid.UUID):
    return db.query(models.Report).filter(models.Report.id == report_id).first()


def get_reports(db: Session, report_type: Optional[str] = None, skip: int = 0, limit: int = 100):
    query = db.query(models.Report)
    if report_type:
        query = query.filter(models.Report.report_type == report_type)
    return query.order_by(models.Report.created_at.desc()).offset(skip).limit(limit).all()


def delete_report(db: Session, db_report: models.Report) -> None:
    db.delete(db_report)
    db.commit()
