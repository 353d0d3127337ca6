"""
Product catalogue and recipe (bill of materials) endpoints.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_write_role
from erp.db import schemas
from erp.db.repositories import products as product_repo
from erp.db.repositories import raw_materials as material_repo
from erp.services import inventory_service
from erp import audit

router = APIRouter(prefix="/products", tags=["products"])


def _get_or_404(db: Session, product_id: uuid.UUID):
    product = product_repo.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/", response_model=List[schemas.Product])
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return product_repo.get_products(db, search=search, category=category, low_stock=low_stock, skip=skip, limit=limit)


@router.post("/", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    if product_repo.get_product_by_sku(db, payload.sku):
        raise HTTPException(status_code=409, detail=f"SKU '{payload.sku}' already exists")
    product = product_repo.create_product(db, payload)
    audit.log_create(db, product, table_name="products", actor_user_id=current_user["id"], request=request)
    return product


@router.get("/{product_id}", response_model=schemas.Product)
def get_product(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return _get_or_404(db, product_id)


@router.put("/{product_id}", response_model=schemas.Product)
def update_product(
    product_id: uuid.UUID,
    payload: schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    product = _get_or_404(db, product_id)
    if payload.sku and payload.sku != product.sku and product_repo.get_product_by_sku(db, payload.sku):
        raise HTTPException(status_code=409, detail=f"SKU '{payload.sku}' already exists")
    before = audit.snapshot(product)
    product = product_repo.update_product(db, product, payload)
    audit.log_update(db, product, before, table_name="products", actor_user_id=current_user["id"], request=request)
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    product = _get_or_404(db, product_id)
    if product_repo.product_in_orders(db, product_id):
        raise HTTPException(status_code=409, detail="Product is used by orders and cannot be deleted")
    before = audit.snapshot(product)
    product_repo.delete_product(db, product)
    audit.log_delete(db, before, table_name="products", actor_user_id=current_user["id"], request=request)


# Recipe

@router.get("/{product_id}/recipe", response_model=schemas.ProductRecipe)
def get_recipe(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _get_or_404(db, product_id)
    return inventory_service.get_recipe(db, product_id)


@router.post("/{product_id}/recipe", response_model=schemas.RecipeLine, status_code=status.HTTP_201_CREATED)
def add_recipe_line(
    product_id: uuid.UUID,
    payload: schemas.RecipeLineCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    _get_or_404(db, product_id)
    if material_repo.get_raw_material(db, payload.raw_material_id) is None:
        raise HTTPException(status_code=404, detail="Raw material not found")
    if product_repo.get_recipe_line_for_material(db, product_id, payload.raw_material_id):
        raise HTTPException(status_code=409, detail="Material is already part of this recipe")
    line = product_repo.add_recipe_line(db, product_id, payload)
    audit.log_create(db, line, table_name="product_recipes", actor_user_id=current_user["id"], request=request)
    db.refresh(line)
    return inventory_service.recipe_line_view(line)


@router.put("/{product_id}/recipe/{line_id}", response_model=schemas.RecipeLine)
def update_recipe_line(
    product_id: uuid.UUID,
    line_id: uuid.UUID,
    payload: schemas.RecipeLineUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    line = product_repo.get_recipe_line(db, product_id, line_id)
    if line is None:
        raise HTTPException(status_code=404, detail="Recipe line not found")
    before = audit.snapshot(line)
    line = product_repo.update_recipe_line(db, line, payload)
    audit.log_update(db, line, before, table_name="product_recipes", actor_user_id=current_user["id"], request=request)
    db.refresh(line)
    return inventory_service.recipe_line_view(line)


@router.delete("/{product_id}/recipe/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe_line(
    product_id: uuid.UUID,
    line_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    line = product_repo.get_recipe_line(db, product_id, line_id)
    if line is None:
        raise HTTPException(status_code=404, detail="Recipe line not found")
    before = audit.snapshot(line)
    product_repo.delete_recipe_line(db, line)
    audit.log_delete(db, before, table_name="product_recipes", actor_user_id=current_user["id"], request=request)
