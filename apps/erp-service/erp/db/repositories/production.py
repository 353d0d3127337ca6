"""
Production order and process repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, or_

from erp.db import models, schemas


def create_production_order(db: Session, order: schemas.ProductionOrderCreate, *, order_number: str, created_by=None):
    data = order.model_dump(exclude={"order_number"})
    db_order = models.ProductionOrder(**data, order_number=order_number, status='planned', created_by=created_by)
    db.add(db_order)
    db.commit()
    db.refresh(db_order)
    return db_order


def get_production_order(db: Session, order_id: uuid.UUID):
    return (
        db.query(models.ProductionOrder)
        .options(selectinload(models.ProductionOrder.processes))
        .filter(models.ProductionOrder.id == order_id)
        .first()
    )


def get_production_orders(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.ProductionOrder)
    if status:
        query = query.filter(models.ProductionOrder.status == status)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(models.ProductionOrder.order_number).like(term),
                func.lower(models.ProductionOrder.product_name).like(term),
                func.lower(models.ProductionOrder.customer_name).like(term),
            )
        )
    return query.order_by(models.ProductionOrder.created_at.desc()).offset(skip).limit(limit).all()


def get_production_orders_created_between(db: Session, start, end):
    return (
        db.query(models.ProductionOrder)
        .filter(models.ProductionOrder.created_at >= start, models.ProductionOrder.created_at < end)
        .all()
    )


def count_production_orders_by_status(db: Session):
    rows = (
        db.query(models.ProductionOrder.status, func.count(models.ProductionOrder.id))
        .group_by(models.ProductionOrder.status)
        .all()
    )
    return {status: count for status, count in rows}


def update_production_order(db: Session, db_order: models.ProductionOrder, order: schemas.ProductionOrderUpdate):
    for key, value in order.model_dump(exclude_unset=True).items():
        setattr(db_order, key, value)
    db.commit()
    db.refresh(db_order)
    return db_order


def delete_production_order(db: Session, db_order: models.ProductionOrder) -> None:
    db.delete(db_order)
    db.commit()


# Processes

def get_processes(db: Session, order_id: uuid.UUID):
    return (
        db.query(models.ProductionProcess)
        .filter(models.ProductionProcess.order_id == order_id)
        .order_by(models.ProductionProcess.sequence_order.asc(), models.ProductionProcess.created_at.asc())
        .all()
    )


def get_process(db: Session, process_id: uuid.UUID):
    return db.query(models.ProductionProcess).filter(models.ProductionProcess.id == process_id).first()


def create_process(db: Session, order_id: uuid.UUID, process: schemas.ProductionProcessCreate):
    db_process = models.ProductionProcess(order_id=order_id, **process.model_dump())
    db.add(db_process)
    db.commit()
    db.refresh(db_process)
    return db_process


def delete_process(db: Session, db_process: models.ProductionProcess) -> None:
    db.delete(db_process)
    db.commit()
