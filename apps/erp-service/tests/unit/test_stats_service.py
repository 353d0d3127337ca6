from datetime import date

import pytest

from erp.db import models
from erp.services import stats_service
from erp.services.stats_service import month_start, trend


@pytest.mark.parametrize(
    "current,previous,expected",
    [
        (120, 100, 20.0),
        (50, 100, -50.0),
        (1, 3, -66.7),
        (5, 0, 100.0),
        (0, 0, 0.0),
    ],
)
def test_trend(current, previous, expected):
    assert trend(current, previous) == expected


def test_month_start_wraps_year():
    assert month_start(date(2025, 3, 18)) == date(2025, 3, 1)
    assert month_start(date(2025, 1, 5), 1) == date(2024, 12, 1)
    assert month_start(date(2025, 1, 5), 13) == date(2023, 12, 1)


def test_dashboard_stats_compares_months(db_session, customer_factory, product_factory, order_factory):
    customer = customer_factory()
    product = product_factory(stock=2, min_stock=5, name="Degreaser")
    product_factory(stock=50, min_stock=5, name="Soap")
    order_factory(customer, [(product, 1, 100)], order_date=date(2025, 5, 10), status="confirmed")
    order_factory(customer, [(product, 1, 100)], order_date=date(2025, 5, 20), status="delivered")
    order_factory(customer, [(product, 1, 50)], order_date=date(2025, 4, 2))

    stats = stats_service.dashboard_stats(db_session, today=date(2025, 5, 25))

    assert stats["orders"] == {"total": 2, "active": 1, "trend": 100.0}
    assert stats["revenue"]["current_month"] == 240.0
    assert stats["revenue"]["last_month"] == 60.0
    assert stats["revenue"]["trend"] == 300.0
    assert stats["products"]["total_stock"] == 52.0
    assert stats["products"]["low_stock_count"] == 1
    assert [p["name"] for p in stats["low_stock_products"]] == ["Degreaser"]
    assert len(stats["recent_orders"]) == 3
    assert stats["customers"]["total"] == 1


def test_admin_stats_counts_by_status(db_session, user_factory):
    creator = user_factory(role="manager")
    db_session.add_all(
        [
            models.Task(title="a", status="pending", created_by=creator.id),
            models.Task(title="b", status="completed", created_by=creator.id),
            models.Task(title="c", status="completed", created_by=creator.id),
            models.ProductionOrder(order_number="URT-1", product_name="X", quantity=1, status="planned"),
            models.ProductionOrder(order_number="URT-2", product_name="X", quantity=1, status="in_production"),
            models.ProductionOrder(order_number="URT-3", product_name="X", quantity=1, status="on_hold"),
            models.Department(name="Dolum"),
        ]
    )
    db_session.commit()

    stats = stats_service.admin_stats(db_session)

    assert stats["tasks"]["total"] == 3
    assert stats["tasks"]["completed"] == 2
    assert stats["tasks"]["cancelled"] == 0
    assert stats["production_orders"]["active"] == 2
    assert stats["production_orders"]["total"] == 3
    assert stats["users"] == 1
    assert stats["departments"] == 1


def test_department_stats(db_session, user_factory):
    creator = user_factory(role="manager")
    filling = models.Department(name="Filling")
    empty = models.Department(name="Labeling")
    order = models.ProductionOrder(order_number="URT-9", product_name="X", quantity=5)
    db_session.add_all([filling, empty, order])
    db_session.flush()
    process = models.ProductionProcess(order_id=order.id, process_name="Fill", assigned_department=filling.id)
    db_session.add(process)
    db_session.flush()
    db_session.add_all(
        [
            models.Task(title="t1", status="completed", production_process_id=process.id, created_by=creator.id),
            models.Task(title="t2", status="in_progress", production_process_id=process.id, created_by=creator.id),
            models.Task(title="t3", status="completed", production_process_id=process.id, created_by=creator.id),
        ]
    )
    db_session.commit()

    stats = {row["name"]: row for row in stats_service.department_stats(db_session)}

    assert stats["Filling"]["process_count"] == 1
    assert stats["Filling"]["active_tasks"] == 1
    assert stats["Filling"]["completed_tasks"] == 2
    assert stats["Filling"]["completion_rate"] == 67
    assert stats["Labeling"] == {
        "id": empty.id,
        "name": "Labeling",
        "process_count": 0,
        "active_tasks": 0,
        "completed_tasks": 0,
        "completion_rate": 0,
    }
