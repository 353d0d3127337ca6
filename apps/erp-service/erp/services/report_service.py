"""
Report aggregation and generation.

Each report aggregates rows in an inclusive date range into the structure the
charts consume. Generation renders that structure to PDF, uploads it to
object storage and records a metadata row.
"""
from __future__ import annotations

import logging
import time as _time
import uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta, UTC
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from erp.db import models
from erp.db.repositories import orders as order_repo
from erp.db.repositories import production as production_repo
from erp.db.repositories import reports as report_repo
from . import pdf_service
from .storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

REPORT_SALES = "sales"
REPORT_PRODUCTION = "production"
REPORT_CUSTOMER = "customer"
REPORT_FINANCIAL = "financial"
REPORT_TYPES = (REPORT_SALES, REPORT_PRODUCTION, REPORT_CUSTOMER, REPORT_FINANCIAL)

REPORT_TITLES = {
    REPORT_SALES: "Sales Report",
    REPORT_PRODUCTION: "Production Report",
    REPORT_CUSTOMER: "Customer Report",
    REPORT_FINANCIAL: "Financial Report",
}

TOP_N = 10
SEGMENT_HIGH = 50000
SEGMENT_MEDIUM = 10000


def _range_bounds(start: date, end: date):
    """Aware datetimes covering [start 00:00, end+1 00:00)."""
    return (
        datetime.combine(start, time.min, tzinfo=UTC),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=UTC),
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _money(value: float) -> float:
    return round(value, 2)


def sales_report(db: Session, start: date, end: date) -> Dict[str, Any]:
    orders = order_repo.get_orders_between(db, start, end, with_items=True)
    total_revenue = sum(o.total or 0 for o in orders)
    products: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        for item in order.items:
            name = item.product_name or "Unknown"
            entry = products.setdefault(name, {"name": name, "quantity": 0.0, "revenue": 0.0})
            entry["quantity"] += item.quantity
            entry["revenue"] += item.total
    top = sorted(products.values(), key=lambda p: p["revenue"], reverse=True)[:TOP_N]
    return {
        "totalOrders": len(orders),
        "totalRevenue": _money(total_revenue),
        "avgOrderValue": _money(total_revenue / len(orders)) if orders else 0.0,
        "topProducts": [{**p, "revenue": _money(p["revenue"])} for p in top],
    }


def production_report(db: Session, start: date, end: date) -> Dict[str, Any]:
    orders = production_repo.get_production_orders_created_between(db, *_range_bounds(start, end))
    distribution = {status: 0 for status in ("planned", "in_production", "quality_check", "completed", "on_hold")}
    products: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        distribution[order.status] = distribution.get(order.status, 0) + 1
        name = order.product_name or "Unknown"
        entry = products.setdefault(name, {"name": name, "quantity": 0.0, "orders": 0})
        entry["quantity"] += order.quantity
        entry["orders"] += 1
    completed = distribution["completed"]
    return {
        "totalOrders": len(orders),
        "completed": completed,
        "completionRate": round(completed / len(orders) * 100, 1) if orders else 0.0,
        "statusDistribution": distribution,
        "topProducts": sorted(products.values(), key=lambda p: p["quantity"], reverse=True)[:TOP_N],
    }


def customer_report(db: Session, start: date, end: date) -> Dict[str, Any]:
    range_start, range_end = _range_bounds(start, end)
    customers = db.query(models.Customer).all()
    new_customers = sum(1 for c in customers if range_start <= _as_utc(c.created_at) < range_end)

    per_customer: Dict[uuid.UUID, Dict[str, Any]] = {}
    for order in order_repo.get_orders_between(db, start, end):
        entry = per_customer.setdefault(order.customer_id, {"orders": 0, "total": 0.0})
        entry["orders"] += 1
        entry["total"] += order.total or 0

    names = {c.id: c.name for c in customers}
    stats = [
        {"name": names.get(cid, "Unknown"), "orders": v["orders"], "total": _money(v["total"])}
        for cid, v in per_customer.items()
    ]
    totals = [s["total"] for s in stats]
    return {
        "totalCustomers": len(customers),
        "newCustomers": new_customers,
        "activeCustomers": len(per_customer),
        "topCustomers": sorted(stats, key=lambda s: s["total"], reverse=True)[:TOP_N],
        "segments": {
            "high": sum(1 for t in totals if t > SEGMENT_HIGH),
            "medium": sum(1 for t in totals if SEGMENT_MEDIUM <= t <= SEGMENT_HIGH),
            "low": sum(1 for t in totals if 0 < t < SEGMENT_MEDIUM),
        },
    }


def financial_report(db: Session, start: date, end: date) -> Dict[str, Any]:
    orders = order_repo.get_orders_between(db, start, end, with_items=True)
    total_revenue = 0.0
    total_cost = 0.0
    monthly: Dict[str, Dict[str, float]] = defaultdict(lambda: {"revenue": 0.0, "cost": 0.0})
    products: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        month = order.order_date.strftime("%Y-%m")
        total_revenue += order.total or 0
        monthly[month]["revenue"] += order.total or 0
        for item in order.items:
            unit_cost = (item.product.cost if item.product is not None else 0) or 0
            cost = item.quantity * unit_cost
            total_cost += cost
            monthly[month]["cost"] += cost
            name = item.product_name or "Unknown"
            entry = products.setdefault(name, {"name": name, "revenue": 0.0, "cost": 0.0})
            entry["revenue"] += item.total
            entry["cost"] += cost

    gross_profit = total_revenue - total_cost
    profitability = [
        {
            "name": p["name"],
            "revenue": _money(p["revenue"]),
            "cost": _money(p["cost"]),
            "profit": _money(p["revenue"] - p["cost"]),
        }
        for p in products.values()
    ]
    return {
        "totalRevenue": _money(total_revenue),
        "totalCost": _money(total_cost),
        "grossProfit": _money(gross_profit),
        "profitMargin": round(gross_profit / total_revenue * 100, 1) if total_revenue else 0.0,
        "monthlyTrend": [
            {
                "month": month,
                "revenue": _money(v["revenue"]),
                "cost": _money(v["cost"]),
                "profit": _money(v["revenue"] - v["cost"]),
            }
            for month, v in sorted(monthly.items())
        ],
        "topProfitableProducts": sorted(profitability, key=lambda p: p["profit"], reverse=True)[:TOP_N],
    }


AGGREGATORS: Dict[str, Callable[[Session, date, date], Dict[str, Any]]] = {
    REPORT_SALES: sales_report,
    REPORT_PRODUCTION: production_report,
    REPORT_CUSTOMER: customer_report,
    REPORT_FINANCIAL: financial_report,
}


def aggregate(db: Session, report_type: str, start: date, end: date) -> Dict[str, Any]:
    try:
        aggregator = AGGREGATORS[report_type]
    except KeyError:
        raise ValueError(f"Unknown report type: {report_type}")
    if start > end:
        raise ValueError("start_date must be on or before end_date")
    return aggregator(db, start, end)


def report_file_path(user_id: uuid.UUID, report_type: str, stamp_ms: Optional[int] = None) -> str:
    stamp_ms = stamp_ms if stamp_ms is not None else int(_time.time() * 1000)
    return f"{user_id}/{report_type}-report-{stamp_ms}.pdf"


def generate_report(
    db: Session,
    report_type: str,
    start: date,
    end: date,
    user_id: uuid.UUID,
    storage: Optional[StorageService] = None,
):
    """Aggregate, render, upload and record a report. Returns (row, data)."""
    data = aggregate(db, report_type, start, end)
    title = REPORT_TITLES[report_type]
    pdf_bytes = pdf_service.render_report(report_type, title, start, end, data)
    path = report_file_path(user_id, report_type)
    storage = storage or get_storage_service()
    storage.upload(path, pdf_bytes, content_type="application/pdf")
    report = report_repo.create_report(
        db,
        title=f"{title} {start.isoformat()} - {end.isoformat()}",
        report_type=report_type,
        report_format="pdf",
        start_date=start,
        end_date=end,
        file_path=path,
        file_size=len(pdf_bytes),
        created_by=user_id,
    )
    logger.info("generated %s report %s (%d bytes)", report_type, path, len(pdf_bytes))
    return report, data


def delete_report(db: Session, report: models.Report, storage: Optional[StorageService] = None) -> None:
    storage = storage or get_storage_service()
    if report.file_path:
        storage.delete(report.file_path)
    report_repo.delete_report(db, report)
