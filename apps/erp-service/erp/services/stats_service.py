"""
Dashboard, admin and department statistics.

Counts and sums are computed in SQL; trends compare the current month with
the previous one.
"""
from __future__ import annotations

from datetime import date, datetime, time, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from erp.db import models
from erp.db.models.base import today_utc
from erp.db.repositories import orders as order_repo
from erp.db.repositories import production as production_repo
from erp.db.repositories import tasks as task_repo
from erp.db.repositories import users as user_repo
from .order_service import ACTIVE_ORDER_STATUSES

TASK_STATUSES = ("pending", "in_progress", "completed", "cancelled")
PRODUCTION_STATUSES = ("planned", "in_production", "quality_check", "completed", "on_hold")


def trend(current: float, previous: float) -> float:
    """Percent change from previous to current, rounded to 1 decimal."""
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    if current > 0:
        return 100.0
    return 0.0


def month_start(day: date, months_ago: int = 0) -> date:
    month_index = day.year * 12 + (day.month - 1) - months_ago
    return date(month_index // 12, month_index % 12 + 1, 1)


def _month_orders(db: Session, start: date, end: Optional[date]):
    query = db.query(models.Order.status, models.Order.total).filter(models.Order.order_date >= start)
    if end is not None:
        query = query.filter(models.Order.order_date < end)
    return query.all()


def dashboard_stats(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or today_utc()
    this_month = month_start(today)
    last_month = month_start(today, 1)
    this_month_dt = datetime.combine(this_month, time.min, tzinfo=UTC)

    total_customers = db.query(func.count(models.Customer.id)).scalar() or 0
    customers_before = (
        db.query(func.count(models.Customer.id)).filter(models.Customer.created_at < this_month_dt).scalar() or 0
    )

    current_orders = _month_orders(db, this_month, None)
    previous_orders = _month_orders(db, last_month, this_month)
    active_orders = sum(1 for status, _ in current_orders if status in ACTIVE_ORDER_STATUSES)
    current_revenue = round(sum(total or 0 for _, total in current_orders), 2)
    previous_revenue = round(sum(total or 0 for _, total in previous_orders), 2)

    total_stock = db.query(func.coalesce(func.sum(models.Product.stock), 0)).scalar() or 0
    low_stock_filter = models.Product.stock < func.coalesce(models.Product.min_stock, 0)
    low_stock_count = db.query(func.count(models.Product.id)).filter(low_stock_filter).scalar() or 0
    low_stock_products = (
        db.query(models.Product).filter(low_stock_filter).order_by(models.Product.stock.asc()).limit(5).all()
    )

    return {
        "customers": {"total": total_customers, "trend": trend(total_customers, customers_before)},
        "orders": {
            "total": len(current_orders),
            "active": active_orders,
            "trend": trend(len(current_orders), len(previous_orders)),
        },
        "products": {"total_stock": float(total_stock), "low_stock_count": low_stock_count, "trend": 0.0},
        "revenue": {
            "current_month": current_revenue,
            "last_month": previous_revenue,
            "trend": trend(current_revenue, previous_revenue),
        },
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "customer_name": o.customer_name or "Unknown",
                "total": o.total or 0,
                "order_date": o.order_date,
            }
            for o in order_repo.get_recent_orders(db, limit=5)
        ],
        "low_stock_products": [
            {"id": p.id, "name": p.name, "stock": p.stock, "min_stock": p.min_stock or 0}
            for p in low_stock_products
        ],
    }


def admin_stats(db: Session) -> Dict[str, Any]:
    task_counts = task_repo.count_tasks_by_status(db)
    tasks = {status: task_counts.get(status, 0) for status in TASK_STATUSES}
    tasks["total"] = sum(task_counts.values())

    production_counts = production_repo.count_production_orders_by_status(db)
    production = {status: production_counts.get(status, 0) for status in PRODUCTION_STATUSES}
    production["total"] = sum(production_counts.values())
    production["active"] = production["planned"] + production["in_production"]

    return {
        "tasks": tasks,
        "production_orders": production,
        "users": user_repo.count_users(db),
        "departments": user_repo.count_departments(db),
    }


def department_stats(db: Session) -> List[Dict[str, Any]]:
    """Per department: processes assigned to it and the tasks linked to them."""
    results = []
    for department in user_repo.list_departments(db):
        process_ids = [
            pid
            for (pid,) in db.query(models.ProductionProcess.id)
            .filter(models.ProductionProcess.assigned_department == department.id)
            .all()
        ]
        active = completed = 0
        if process_ids:
            rows = (
                db.query(models.Task.status, func.count(models.Task.id))
                .filter(models.Task.production_process_id.in_(process_ids))
                .group_by(models.Task.status)
                .all()
            )
            for status, count in rows:
                if status == "completed":
                    completed += count
                else:
                    active += count
        total = active + completed
        results.append(
            {
                "id": department.id,
                "name": department.name,
                "process_count": len(process_ids),
                "active_tasks": active,
                "completed_tasks": completed,
                "completion_rate": round(completed / total * 100) if total else 0,
            }
        )
    return results
