"""
Raw material endpoints, including the per-material transaction ledger.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_write_role
from erp.db import schemas
from erp.db.repositories import raw_materials as material_repo
from erp.services import inventory_service
from erp.services.errors import ConflictError
from erp import audit

router = APIRouter(prefix="/raw-materials", tags=["raw-materials"])


def _get_or_404(db: Session, material_id: uuid.UUID):
    material = material_repo.get_raw_material(db, material_id)
    if material is None:
        raise HTTPException(status_code=404, detail="Raw material not found")
    return material


@router.get("/", response_model=List[schemas.RawMaterial])
def list_raw_materials(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return material_repo.get_raw_materials(
        db, search=search, category=category, low_stock=low_stock, skip=skip, limit=limit
    )


@router.post("/", response_model=schemas.RawMaterial, status_code=status.HTTP_201_CREATED)
def create_raw_material(
    payload: schemas.RawMaterialCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    if material_repo.get_raw_material_by_sku(db, payload.sku):
        raise HTTPException(status_code=409, detail=f"SKU '{payload.sku}' already exists")
    material = material_repo.create_raw_material(db, payload)
    audit.log_create(db, material, table_name="raw_materials", actor_user_id=current_user["id"], request=request)
    return material


@router.get("/{material_id}", response_model=schemas.RawMaterial)
def get_raw_material(
    material_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return _get_or_404(db, material_id)


@router.put("/{material_id}", response_model=schemas.RawMaterial)
def update_raw_material(
    material_id: uuid.UUID,
    payload: schemas.RawMaterialUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    material = _get_or_404(db, material_id)
    if payload.sku and payload.sku != material.sku and material_repo.get_raw_material_by_sku(db, payload.sku):
        raise HTTPException(status_code=409, detail=f"SKU '{payload.sku}' already exists")
    before = audit.snapshot(material)
    material = material_repo.update_raw_material(db, material, payload)
    audit.log_update(db, material, before, table_name="raw_materials", actor_user_id=current_user["id"], request=request)
    return material


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_raw_material(
    material_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    material = _get_or_404(db, material_id)
    before = audit.snapshot(material)
    material_repo.delete_raw_material(db, material)
    audit.log_delete(db, before, table_name="raw_materials", actor_user_id=current_user["id"], request=request)


@router.get("/{material_id}/transactions", response_model=List[schemas.MaterialTransaction])
def list_transactions(
    material_id: uuid.UUID,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _get_or_404(db, material_id)
    return material_repo.get_transactions(db, material_id, skip=skip, limit=limit)


@router.post(
    "/{material_id}/transactions",
    response_model=schemas.MaterialTransaction,
    status_code=status.HTTP_201_CREATED,
)
def record_transaction(
    material_id: uuid.UUID,
    payload: schemas.MaterialTransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    material = _get_or_404(db, material_id)
    try:
        tx = inventory_service.record_transaction(db, material, payload, created_by=current_user["id"])
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_create(db, tx, table_name="material_transactions", actor_user_id=current_user["id"], request=request)
    return tx
