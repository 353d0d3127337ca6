"""
Sales order repository functions.

Totals are computed by `erp.services.order_service`; these helpers only
read and persist rows.
"""
from __future__ import annotations

import uuid
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import func, or_

from erp.db import models


def get_order(db: Session, order_id: uuid.UUID):
    return (
        db.query(models.Order)
        .options(
            joinedload(models.Order.customer),
            selectinload(models.Order.items).joinedload(models.OrderItem.product),
        )
        .filter(models.Order.id == order_id)
        .first()
    )


def order_number_exists(db: Session, order_number: str, model=models.Order) -> bool:
    return db.query(model.id).filter(model.order_number == order_number).first() is not None


def get_orders(
    db: Session,
    search: Optional[str] = None,
    status: Optional[str] = None,
    customer_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.Order).outerjoin(models.Customer, models.Customer.id == models.Order.customer_id)
    query = query.options(joinedload(models.Order.customer))
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.Order.order_number).like(term), func.lower(models.Customer.name).like(term))
        )
    if status:
        query = query.filter(models.Order.status == status)
    if customer_id:
        query = query.filter(models.Order.customer_id == customer_id)
    return (
        query.order_by(models.Order.order_date.desc(), models.Order.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_orders_between(db: Session, start: date, end: date, *, with_items: bool = False):
    """Orders whose order_date falls within [start, end] (inclusive)."""
    query = db.query(models.Order).filter(models.Order.order_date >= start, models.Order.order_date <= end)
    if with_items:
        query = query.options(selectinload(models.Order.items).joinedload(models.OrderItem.product))
    return query.order_by(models.Order.order_date.asc()).all()


def get_recent_orders(db: Session, limit: int = 5):
    return (
        db.query(models.Order)
        .options(joinedload(models.Order.customer))
        .order_by(models.Order.order_date.desc(), models.Order.created_at.desc())
        .limit(limit)
        .all()
    )


def delete_order(db: Session, db_order: models.Order) -> None:
    db.delete(db_order)
    db.commit()
