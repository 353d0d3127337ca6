"""
Sales order service.

Computes line and order totals, allocates order numbers and persists
orders with their items. Amounts are rounded to 2 decimals.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from erp.db import models, schemas
from erp.db.repositories import orders as order_repo
from erp.db.repositories import products as product_repo
from erp.db.repositories import customers as customer_repo
from .errors import ConflictError

logger = logging.getLogger(__name__)

TAX_RATE = 0.20
ORDER_NUMBER_PREFIX = "SIP"
ACTIVE_ORDER_STATUSES = ("pending", "confirmed", "in_progress")


def _round(amount: float) -> float:
    return round(float(amount), 2)


def line_total(quantity: float, unit_price: float, discount: float = 0) -> float:
    return _round(quantity * unit_price - (discount or 0))


def compute_totals(line_totals: Iterable[float]) -> Tuple[float, float, float]:
    """Return (subtotal, tax, total) for the given line totals."""
    subtotal = _round(sum(line_totals))
    tax = _round(subtotal * TAX_RATE)
    return subtotal, tax, _round(subtotal + tax)


def generate_order_number(db: Session, prefix: str = ORDER_NUMBER_PREFIX, model=models.Order) -> str:
    """Allocate `<prefix>-<epoch ms>`, bumping the millisecond until unused."""
    stamp = int(time.time() * 1000)
    while order_repo.order_number_exists(db, f"{prefix}-{stamp}", model=model):
        stamp += 1
    return f"{prefix}-{stamp}"


def _build_items(db: Session, items: List[schemas.OrderItemCreate]) -> List[models.OrderItem]:
    products = {p.id: p for p in product_repo.get_products_by_ids(db, {i.product_id for i in items})}
    missing = [str(i.product_id) for i in items if i.product_id not in products]
    if missing:
        raise ValueError(f"Unknown product(s): {', '.join(missing)}")
    built = []
    for item in items:
        total = line_total(item.quantity, item.unit_price, item.discount)
        if total < 0:
            raise ValueError("Discount exceeds line amount")
        built.append(
            models.OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                total=total,
            )
        )
    return built


def _apply_totals(order: models.Order) -> None:
    order.subtotal, order.tax, order.total = compute_totals(item.total for item in order.items)


def create_order(db: Session, payload: schemas.OrderCreate, created_by: Optional[uuid.UUID] = None) -> models.Order:
    if customer_repo.get_customer(db, payload.customer_id) is None:
        raise ValueError("Customer not found")
    order_number = (payload.order_number or "").strip() or generate_order_number(db)
    if order_repo.order_number_exists(db, order_number):
        raise ConflictError(f"Order number '{order_number}' already exists")

    fields = payload.model_dump(exclude={"items", "order_number"}, exclude_none=True)
    order = models.Order(order_number=order_number, created_by=created_by, **fields)
    order.items = _build_items(db, payload.items)
    _apply_totals(order)
    db.add(order)
    db.commit()
    logger.info("order %s created with %d item(s), total=%.2f", order.order_number, len(order.items), order.total)
    return order_repo.get_order(db, order.id)


def update_order(db: Session, order: models.Order, payload: schemas.OrderUpdate) -> models.Order:
    """Apply header changes; a provided item list replaces every line."""
    data = payload.model_dump(exclude_unset=True, exclude={"items"})
    if "customer_id" in data:
        if customer_repo.get_customer(db, data["customer_id"]) is None:
            raise ValueError("Customer not found")
    for key, value in data.items():
        setattr(order, key, value)
    if payload.items is not None:
        order.items.clear()
        db.flush()
        order.items.extend(_build_items(db, payload.items))
        _apply_totals(order)
    db.commit()
    return order_repo.get_order(db, order.id)


def set_status(db: Session, order: models.Order, status: str) -> models.Order:
    order.status = status
    db.commit()
    db.refresh(order)
    return order
