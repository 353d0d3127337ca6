"""
Production order and process endpoints.

Orders are gated by the production_orders permission row, processes by
production_processes.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import require_permission
from erp.db import schemas
from erp.db.repositories import production as production_repo
from erp.services import production_service
from erp.services.errors import ConflictError, InvalidTransitionError
from erp.utils.role_permissions import RESOURCE_PRODUCTION_ORDERS, RESOURCE_PRODUCTION_PROCESSES
from erp import audit

router = APIRouter(prefix="/production-orders", tags=["production"])


def _get_order_or_404(db: Session, order_id: uuid.UUID):
    order = production_repo.get_production_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Production order not found")
    return order


def _get_process_or_404(db: Session, order_id: uuid.UUID, process_id: uuid.UUID):
    process = production_repo.get_process(db, process_id)
    if process is None or process.order_id != order_id:
        raise HTTPException(status_code=404, detail="Production process not found")
    return process


@router.get("/", response_model=List[schemas.ProductionOrder])
def list_production_orders(
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "read")),
):
    return production_repo.get_production_orders(db, status=status, search=search, skip=skip, limit=limit)


@router.post("/", response_model=schemas.ProductionOrder, status_code=status.HTTP_201_CREATED)
def create_production_order(
    payload: schemas.ProductionOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "create")),
):
    _user, current_user = user_context
    try:
        order = production_service.create_production_order(db, payload, created_by=current_user["id"])
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_create(db, order, table_name="production_orders", actor_user_id=current_user["id"], request=request)
    return order


@router.get("/{order_id}", response_model=schemas.ProductionOrderDetail)
def get_production_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "read")),
):
    return _get_order_or_404(db, order_id)


@router.put("/{order_id}", response_model=schemas.ProductionOrder)
def update_production_order(
    order_id: uuid.UUID,
    payload: schemas.ProductionOrderUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "update")),
):
    _user, current_user = user_context
    order = _get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    try:
        order = production_service.update_production_order(db, order, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_update(db, order, before, table_name="production_orders", actor_user_id=current_user["id"], request=request)
    return order


@router.patch("/{order_id}/status", response_model=schemas.ProductionOrder)
def change_production_status(
    order_id: uuid.UUID,
    payload: schemas.ProductionStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "update")),
):
    _user, current_user = user_context
    order = _get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    try:
        order = production_service.change_status(db, order, payload.status)
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_update(db, order, before, table_name="production_orders", actor_user_id=current_user["id"], request=request)
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_production_order(
    order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_ORDERS, "delete")),
):
    _user, current_user = user_context
    order = _get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    production_repo.delete_production_order(db, order)
    audit.log_delete(db, before, table_name="production_orders", actor_user_id=current_user["id"], request=request)


# Processes

@router.get("/{order_id}/processes", response_model=List[schemas.ProductionProcess])
def list_processes(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_PROCESSES, "read")),
):
    _get_order_or_404(db, order_id)
    return production_repo.get_processes(db, order_id)


@router.post(
    "/{order_id}/processes",
    response_model=schemas.ProductionProcess,
    status_code=status.HTTP_201_CREATED,
)
def create_process(
    order_id: uuid.UUID,
    payload: schemas.ProductionProcessCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_PROCESSES, "create")),
):
    _user, current_user = user_context
    _get_order_or_404(db, order_id)
    process = production_repo.create_process(db, order_id, payload)
    audit.log_create(db, process, table_name="production_processes", actor_user_id=current_user["id"], request=request)
    return process


@router.put("/{order_id}/processes/{process_id}", response_model=schemas.ProductionProcess)
def update_process(
    order_id: uuid.UUID,
    process_id: uuid.UUID,
    payload: schemas.ProductionProcessUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_PROCESSES, "update")),
):
    _user, current_user = user_context
    process = _get_process_or_404(db, order_id, process_id)
    before = audit.snapshot(process)
    process = production_service.update_process(db, process, payload)
    audit.log_update(db, process, before, table_name="production_processes", actor_user_id=current_user["id"], request=request)
    return process


@router.delete("/{order_id}/processes/{process_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_process(
    order_id: uuid.UUID,
    process_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_PRODUCTION_PROCESSES, "delete")),
):
    _user, current_user = user_context
    process = _get_process_or_404(db, order_id, process_id)
    before = audit.snapshot(process)
    production_repo.delete_process(db, process)
    audit.log_delete(db, before, table_name="production_processes", actor_user_id=current_user["id"], request=request)
