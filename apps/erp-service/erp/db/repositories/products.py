"""
Product and product recipe (bill of materials) repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, or_

from erp.db import models, schemas


def create_product(db: Session, product: schemas.ProductCreate):
    db_product = models.Product(**product.model_dump())
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def get_product(db: Session, product_id: uuid.UUID):
    return db.query(models.Product).filter(models.Product.id == product_id).first()


def get_product_by_sku(db: Session, sku: str):
    return db.query(models.Product).filter(func.lower(models.Product.sku) == sku.strip().lower()).first()


def get_products_by_ids(db: Session, product_ids):
    ids = list(product_ids)
    if not ids:
        return []
    return db.query(models.Product).filter(models.Product.id.in_(ids)).all()


def get_products(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.Product)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(or_(func.lower(models.Product.name).like(term), func.lower(models.Product.sku).like(term)))
    if category:
        query = query.filter(models.Product.category == category)
    if low_stock:
        query = query.filter(models.Product.stock < func.coalesce(models.Product.min_stock, 0))
    return query.order_by(models.Product.name.asc()).offset(skip).limit(limit).all()


def update_product(db: Session, db_product: models.Product, product: schemas.ProductUpdate):
    for key, value in product.model_dump(exclude_unset=True).items():
        setattr(db_product, key, value)
    db.commit()
    db.refresh(db_product)
    return db_product


def product_in_orders(db: Session, product_id: uuid.UUID) -> bool:
    return db.query(models.OrderItem.id).filter(models.OrderItem.product_id == product_id).first() is not None


def delete_product(db: Session, db_product: models.Product) -> None:
    db.delete(db_product)
    db.commit()


# Recipes

def get_recipe_lines(db: Session, product_id: uuid.UUID):
    return (
        db.query(models.ProductRecipe)
        .options(joinedload(models.ProductRecipe.raw_material))
        .filter(models.ProductRecipe.product_id == product_id)
        .order_by(models.ProductRecipe.created_at.asc())
        .all()
    )


def get_recipe_line(db: Session, product_id: uuid.UUID, line_id: uuid.UUID):
    return (
        db.query(models.ProductRecipe)
        .filter(models.ProductRecipe.product_id == product_id, models.ProductRecipe.id == line_id)
        .first()
    )


def get_recipe_line_for_material(db: Session, product_id: uuid.UUID, raw_material_id: uuid.UUID):
    return (
        db.query(models.ProductRecipe)
        .filter(models.ProductRecipe.product_id == product_id, models.ProductRecipe.raw_material_id == raw_material_id)
        .first()
    )


def add_recipe_line(db: Session, product_id: uuid.UUID, line: schemas.RecipeLineCreate):
    db_line = models.ProductRecipe(product_id=product_id, **line.model_dump())
    db.add(db_line)
    db.commit()
    db.refresh(db_line)
    return db_line


def update_recipe_line(db: Session, db_line: models.ProductRecipe, line: schemas.RecipeLineUpdate):
    for key, value in line.model_dump(exclude_unset=True).items():
        setattr(db_line, key, value)
    db.commit()
    db.refresh(db_line)
    return db_line


def delete_recipe_line(db: Session, db_line: models.ProductRecipe) -> None:
    db.delete(db_line)
    db.commit()
