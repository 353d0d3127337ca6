"""
Customer API endpoints.

Any signed-in user can read; admins, managers and operators can write.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_write_role
from erp.db import schemas
from erp.db.repositories import customers as customer_repo
from erp.db.repositories import orders as order_repo
from erp import audit

router = APIRouter(prefix="/customers", tags=["customers"])


def _get_or_404(db: Session, customer_id: uuid.UUID):
    customer = customer_repo.get_customer(db, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("/", response_model=List[schemas.Customer])
def list_customers(
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return customer_repo.get_customers(db, search=search, skip=skip, limit=limit)


@router.post("/", response_model=schemas.Customer, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: schemas.CustomerCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    customer = customer_repo.create_customer(db, payload, created_by=current_user["id"])
    audit.log_create(db, customer, table_name="customers", actor_user_id=current_user["id"], request=request)
    return customer


@router.get("/{customer_id}", response_model=schemas.Customer)
def get_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return _get_or_404(db, customer_id)


@router.get("/{customer_id}/orders", response_model=List[schemas.Order])
def list_customer_orders(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _get_or_404(db, customer_id)
    return order_repo.get_orders(db, customer_id=customer_id, limit=500)


@router.put("/{customer_id}", response_model=schemas.Customer)
def update_customer(
    customer_id: uuid.UUID,
    payload: schemas.CustomerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    customer = _get_or_404(db, customer_id)
    before = audit.snapshot(customer)
    customer = customer_repo.update_customer(db, customer, payload)
    audit.log_update(db, customer, before, table_name="customers", actor_user_id=current_user["id"], request=request)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    _user, current_user = user_context
    customer = _get_or_404(db, customer_id)
    if customer_repo.count_orders_for_customer(db, customer_id):
        raise HTTPException(status_code=409, detail="Customer has orders and cannot be deleted")
    before = audit.snapshot(customer)
    customer_repo.delete_customer(db, customer)
    audit.log_delete(db, before, table_name="customers", actor_user_id=current_user["id"], request=request)
