"""
Sales order endpoints.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_write_role
from erp.db import schemas
from erp.db.repositories import orders as order_repo
from erp.services import order_service, inventory_service
from erp.services.errors import ConflictError
from erp import audit

router = APIRouter(prefix="/orders", tags=["orders"])


def _get_or_404(db: Session, order_id: uuid.UUID):
    order = order_repo.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _order_snapshot(order):
    data = audit.snapshot(order)
    data["items"] = [audit.snapshot(item) for item in order.items]
    return data


@router.get("/", response_model=List[schemas.Order])
def list_orders(
    search: Optional[str] = None,
    status: Optional[str] = None,
    customer_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return order_repo.get_orders(db, search=search, status=status, customer_id=customer_id, skip=skip, limit=limit)


@router.post("/", response_model=schemas.OrderDetail, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: schemas.OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    try:
        order = order_service.create_order(db, payload, created_by=current_user["id"])
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log(
        db,
        action=audit.AuditAction.CREATE,
        table_name="orders",
        record_id=order.id,
        new_data=_order_snapshot(order),
        actor_user_id=current_user["id"],
        request=request,
    )
    return order


@router.get("/{order_id}", response_model=schemas.OrderDetail)
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return _get_or_404(db, order_id)


@router.put("/{order_id}", response_model=schemas.OrderDetail)
def update_order(
    order_id: uuid.UUID,
    payload: schemas.OrderUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    order = _get_or_404(db, order_id)
    before = _order_snapshot(order)
    try:
        order = order_service.update_order(db, order, payload)
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log(
        db,
        action=audit.AuditAction.UPDATE,
        table_name="orders",
        record_id=order.id,
        old_data=before,
        new_data=_order_snapshot(order),
        actor_user_id=current_user["id"],
        request=request,
    )
    return order


@router.patch("/{order_id}/status", response_model=schemas.Order)
def update_order_status(
    order_id: uuid.UUID,
    payload: schemas.OrderStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    order = _get_or_404(db, order_id)
    before = audit.snapshot(order)
    order = order_service.set_status(db, order, payload.status)
    audit.log_update(db, order, before, table_name="orders", actor_user_id=current_user["id"], request=request)
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    order = _get_or_404(db, order_id)
    before = _order_snapshot(order)
    order_repo.delete_order(db, order)
    audit.log_delete(db, before, table_name="orders", actor_user_id=current_user["id"], request=request)


@router.post("/{order_id}/consume-materials", response_model=schemas.MaterialConsumptionResult)
def consume_materials(
    order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    try:
        transactions = inventory_service.consume_materials_for_order(db, order_id, created_by=current_user["id"])
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    for tx in transactions:
        audit.log_create(db, tx, table_name="material_transactions", actor_user_id=current_user["id"], request=request)
    return {"order_id": order_id, "transactions": transactions}
