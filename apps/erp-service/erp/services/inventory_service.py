"""
Inventory service: material transactions, recipe costing and consumption
of raw materials for sales orders.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from erp.db import models, schemas
from erp.db.repositories import orders as order_repo
from erp.db.repositories import products as product_repo
from erp.db.repositories import raw_materials as material_repo
from .errors import ConflictError, InsufficientStockError

logger = logging.getLogger(__name__)

TX_PURCHASE = "purchase"
TX_CONSUMPTION = "consumption"
TX_ADJUSTMENT = "adjustment"
TX_RETURN = "return"

REFERENCE_ORDER = "order"


def stock_delta(transaction_type: str, quantity: float) -> float:
    """Signed change a transaction applies to stock."""
    if transaction_type in (TX_PURCHASE, TX_RETURN):
        return quantity
    if transaction_type == TX_CONSUMPTION:
        return -quantity
    if transaction_type == TX_ADJUSTMENT:
        return quantity
    raise ValueError(f"Unknown transaction type: {transaction_type}")


def _validate_quantity(transaction_type: str, quantity: float) -> None:
    if transaction_type == TX_ADJUSTMENT:
        if quantity == 0:
            raise ValueError("Adjustment quantity must be non-zero")
    elif quantity <= 0:
        raise ValueError("Quantity must be greater than zero")


def record_transaction(
    db: Session,
    material: models.RawMaterial,
    payload: schemas.MaterialTransactionCreate,
    created_by: Optional[uuid.UUID] = None,
) -> models.MaterialTransaction:
    """Persist a transaction and apply it to the material's stock."""
    _validate_quantity(payload.transaction_type, payload.quantity)
    current = float(material.stock or 0)
    new_stock = round(current + stock_delta(payload.transaction_type, payload.quantity), 3)
    if new_stock < 0:
        if payload.transaction_type == TX_CONSUMPTION:
            raise InsufficientStockError(material.name, payload.quantity, current)
        raise ConflictError(f"Adjustment would take {material.name} below zero")

    data = payload.model_dump()
    if data.get("unit_cost") is None:
        data["unit_cost"] = material.cost
    tx = models.MaterialTransaction(raw_material_id=material.id, created_by=created_by, **data)
    material.stock = new_stock
    db.add(tx)
    db.commit()
    db.refresh(tx)
    logger.info(
        "material %s %s %.3f -> stock %.3f", material.sku, payload.transaction_type, payload.quantity, new_stock
    )
    return tx


def recipe_line_view(line: models.ProductRecipe) -> Dict:
    material = line.raw_material
    unit_cost = float(material.cost or 0)
    qty = float(line.quantity_per_unit)
    return {
        "id": line.id,
        "product_id": line.product_id,
        "raw_material_id": line.raw_material_id,
        "material_name": material.name,
        "material_sku": material.sku,
        "unit": material.unit,
        "unit_cost": unit_cost,
        "quantity_per_unit": qty,
        "line_cost": round(qty * unit_cost, 2),
        "notes": line.notes,
    }


def get_recipe(db: Session, product_id: uuid.UUID) -> Dict:
    """Recipe lines for a product with the per-unit material cost."""
    lines = [recipe_line_view(line) for line in product_repo.get_recipe_lines(db, product_id)]
    return {
        "product_id": product_id,
        "lines": lines,
        "unit_cost": round(sum(line["line_cost"] for line in lines), 2),
    }


def consume_materials_for_order(
    db: Session,
    order_id: uuid.UUID,
    created_by: Optional[uuid.UUID] = None,
) -> List[models.MaterialTransaction]:
    """Consume the recipe materials for every item of a sales order.

    All-or-nothing: requirements are summed per material and checked before
    anything is written. A second call for the same order is rejected.
    """
    order = order_repo.get_order(db, order_id)
    if order is None:
        raise LookupError("Order not found")
    if material_repo.get_transactions_for_reference(db, REFERENCE_ORDER, order_id):
        raise ConflictError("Materials already consumed for this order")

    consumptions = []
    required: Dict[uuid.UUID, float] = defaultdict(float)
    materials: Dict[uuid.UUID, models.RawMaterial] = {}
    for item in order.items:
        for line in product_repo.get_recipe_lines(db, item.product_id):
            quantity = round(float(item.quantity) * float(line.quantity_per_unit), 3)
            consumptions.append((item, line.raw_material, quantity))
            required[line.raw_material_id] += quantity
            materials[line.raw_material_id] = line.raw_material
    if not consumptions:
        raise ValueError("No recipe lines found for the order's products")

    for material_id, quantity in required.items():
        material = materials[material_id]
        available = float(material.stock or 0)
        if round(available - quantity, 3) < 0:
            raise InsufficientStockError(material.name, round(quantity, 3), available)

    transactions = []
    for item, material, quantity in consumptions:
        material.stock = round(float(material.stock or 0) - quantity, 3)
        tx = models.MaterialTransaction(
            raw_material_id=material.id,
            transaction_type=TX_CONSUMPTION,
            quantity=quantity,
            unit_cost=material.cost,
            reference_type=REFERENCE_ORDER,
            reference_id=order_id,
            notes=f"Consumed for order {order.order_number} ({item.product_name})",
            created_by=created_by,
        )
        db.add(tx)
        transactions.append(tx)
    db.commit()
    for tx in transactions:
        db.refresh(tx)
    logger.info("consumed %d material(s) for order %s", len(transactions), order.order_number)
    return transactions
