"""
Production order lifecycle.

planned -> in_production -> quality_check -> completed, with on_hold reachable
from any state except completed. Completed orders are terminal.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from erp.db import models, schemas
from erp.db.models.base import now_utc, today_utc
from erp.db.repositories import orders as order_repo
from erp.db.repositories import production as production_repo
from .errors import ConflictError, InvalidTransitionError
from .order_service import generate_order_number

logger = logging.getLogger(__name__)

STATUS_PLANNED = "planned"
STATUS_IN_PRODUCTION = "in_production"
STATUS_QUALITY_CHECK = "quality_check"
STATUS_COMPLETED = "completed"
STATUS_ON_HOLD = "on_hold"

ACTIVE_STATUSES = (STATUS_PLANNED, STATUS_IN_PRODUCTION)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATUS_PLANNED: frozenset({STATUS_IN_PRODUCTION, STATUS_ON_HOLD}),
    STATUS_IN_PRODUCTION: frozenset({STATUS_QUALITY_CHECK, STATUS_ON_HOLD}),
    STATUS_QUALITY_CHECK: frozenset({STATUS_COMPLETED, STATUS_IN_PRODUCTION, STATUS_ON_HOLD}),
    STATUS_ON_HOLD: frozenset({STATUS_PLANNED, STATUS_IN_PRODUCTION, STATUS_QUALITY_CHECK}),
    STATUS_COMPLETED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def create_production_order(
    db: Session,
    payload: schemas.ProductionOrderCreate,
    created_by: Optional[uuid.UUID] = None,
) -> models.ProductionOrder:
    order_number = (payload.order_number or "").strip()
    if order_number:
        if order_repo.order_number_exists(db, order_number, model=models.ProductionOrder):
            raise ConflictError(f"Production order number '{order_number}' already exists")
    else:
        order_number = generate_order_number(db, model=models.ProductionOrder)
    if payload.customer_id is not None and not payload.customer_name:
        customer = db.get(models.Customer, payload.customer_id)
        if customer is None:
            raise ValueError("Customer not found")
        payload = payload.model_copy(update={"customer_name": customer.name})
    order = production_repo.create_production_order(db, payload, order_number=order_number, created_by=created_by)
    logger.info("production order %s planned (%s x %s)", order.order_number, order.quantity, order.product_name)
    return order


def update_production_order(
    db: Session,
    order: models.ProductionOrder,
    payload: schemas.ProductionOrderUpdate,
) -> models.ProductionOrder:
    fields = payload.model_fields_set
    if "customer_id" in fields and "customer_name" not in fields:
        customer_name = None
        if payload.customer_id is not None:
            customer = db.get(models.Customer, payload.customer_id)
            if customer is None:
                raise ValueError("Customer not found")
            customer_name = customer.name
        payload = payload.model_copy(update={"customer_name": customer_name})
    elif payload.customer_id is not None and db.get(models.Customer, payload.customer_id) is None:
        raise ValueError("Customer not found")
    return production_repo.update_production_order(db, order, payload)


def change_status(db: Session, order: models.ProductionOrder, target: str) -> models.ProductionOrder:
    """Move an order through its lifecycle and stamp the lifecycle dates."""
    current = order.status
    if current == target:
        return order
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot change production status from {current} to {target}")
    order.status = target
    if target == STATUS_IN_PRODUCTION and order.start_date is None:
        order.start_date = today_utc()
    if target == STATUS_COMPLETED:
        order.completed_date = today_utc()
    db.commit()
    db.refresh(order)
    logger.info("production order %s: %s -> %s", order.order_number, current, target)
    return order


def update_process(
    db: Session,
    process: models.ProductionProcess,
    payload: schemas.ProductionProcessUpdate,
) -> models.ProductionProcess:
    data = payload.model_dump(exclude_unset=True)
    status = data.pop("status", None)
    for key, value in data.items():
        setattr(process, key, value)
    if status is not None and status != process.status:
        process.status = status
        if status == "in_progress" and process.started_at is None:
            process.started_at = now_utc()
        elif status == "completed":
            process.completed_at = now_utc()
    db.commit()
    db.refresh(process)
    return process
