"""
Customer repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, or_

from erp.db import models, schemas


def create_customer(db: Session, customer: schemas.CustomerCreate, created_by: Optional[uuid.UUID] = None):
    db_customer = models.Customer(**customer.model_dump(), created_by=created_by)
    db.add(db_customer)
    db.commit()
    db.refresh(db_customer)
    return db_customer


def get_customer(db: Session, customer_id: uuid.UUID):
    return db.query(models.Customer).filter(models.Customer.id == customer_id).first()


def get_customers(db: Session, search: Optional[str] = None, skip: int = 0, limit: int = 100):
    query = db.query(models.Customer)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(models.Customer.name).like(term),
                func.lower(models.Customer.company).like(term),
                func.lower(models.Customer.email).like(term),
            )
        )
    return query.order_by(models.Customer.created_at.desc()).offset(skip).limit(limit).all()


def update_customer(db: Session, db_customer: models.Customer, customer: schemas.CustomerUpdate):
    for key, value in customer.model_dump(exclude_unset=True).items():
        setattr(db_customer, key, value)
    db.commit()
    db.refresh(db_customer)
    return db_customer


def count_orders_for_customer(db: Session, customer_id: uuid.UUID) -> int:
    return db.query(func.count(models.Order.id)).filter(models.Order.customer_id == customer_id).scalar() or 0


def delete_customer(db: Session, db_customer: models.Customer) -> None:
    db.delete(db_customer)
    db.commit()
