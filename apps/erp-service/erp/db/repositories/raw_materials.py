"""
Raw material and material transaction repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, or_

from erp.db import models, schemas


def create_raw_material(db: Session, material: schemas.RawMaterialCreate):
    db_material = models.RawMaterial(**material.model_dump())
    db.add(db_material)
    db.commit()
    db.refresh(db_material)
    return db_material


def get_raw_material(db: Session, material_id: uuid.UUID):
    return db.query(models.RawMaterial).filter(models.RawMaterial.id == material_id).first()


def get_raw_material_by_sku(db: Session, sku: str):
    return db.query(models.RawMaterial).filter(func.lower(models.RawMaterial.sku) == sku.strip().lower()).first()


def get_raw_materials(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.RawMaterial)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.RawMaterial.name).like(term), func.lower(models.RawMaterial.sku).like(term))
        )
    if category:
        query = query.filter(models.RawMaterial.category == category)
    if low_stock:
        query = query.filter(models.RawMaterial.stock < models.RawMaterial.min_stock)
    return query.order_by(models.RawMaterial.name.asc()).offset(skip).limit(limit).all()


def update_raw_material(db: Session, db_material: models.RawMaterial, material: schemas.RawMaterialUpdate):
    for key, value in material.model_dump(exclude_unset=True).items():
        setattr(db_material, key, value)
    db.commit()
    db.refresh(db_material)
    return db_material


def delete_raw_material(db: Session, db_material: models.RawMaterial) -> None:
    db.delete(db_material)
    db.commit()


def get_transactions(db: Session, material_id: uuid.UUID, skip: int = 0, limit: int = 100):
    return (
        db.query(models.MaterialTransaction)
        .filter(models.MaterialTransaction.raw_material_id == material_id)
        .order_by(models.MaterialTransaction.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_transactions_for_reference(db: Session, reference_type: str, reference_id: uuid.UUID):
    return (
        db.query(models.MaterialTransaction)
        .filter(
            models.MaterialTransaction.reference_type == reference_type,
            models.MaterialTransaction.reference_id == reference_id,
        )
        .order_by(models.MaterialTransaction.created_at.asc())
        .all()
    )
