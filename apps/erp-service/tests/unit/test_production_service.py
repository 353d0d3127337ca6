import re

import pytest

from erp.db import schemas
from erp.db.models.base import today_utc
from erp.db.repositories import production as production_repo
from erp.services import production_service
from erp.services.errors import ConflictError, InvalidTransitionError


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        ("planned", "in_production", True),
        ("planned", "completed", False),
        ("in_production", "quality_check", True),
        ("quality_check", "in_production", True),
        ("quality_check", "completed", True),
        ("on_hold", "planned", True),
        ("on_hold", "completed", False),
        ("completed", "on_hold", False),
        ("completed", "planned", False),
    ],
)
def test_can_transition(current, target, allowed):
    assert production_service.can_transition(current, target) is allowed


def test_create_assigns_number_and_customer_name(db_session, customer_factory):
    customer = customer_factory(name="Delta Temizlik")
    order = production_service.create_production_order(
        db_session,
        schemas.ProductionOrderCreate(product_name="Bleach 1L", quantity=500, customer_id=customer.id),
    )
    assert re.fullmatch(r"SIP-\d+", order.order_number)
    assert order.status == "planned"
    assert order.customer_name == "Delta Temizlik"


def test_duplicate_number_conflicts(db_session):
    payload = schemas.ProductionOrderCreate(order_number="URT-100", product_name="Soap", quantity=1)
    production_service.create_production_order(db_session, payload)
    with pytest.raises(ConflictError):
        production_service.create_production_order(db_session, payload)


def test_lifecycle_stamps_dates(db_session):
    order = production_service.create_production_order(
        db_session, schemas.ProductionOrderCreate(product_name="Soap", quantity=10)
    )

    production_service.change_status(db_session, order, "in_production")
    assert order.start_date == today_utc()
    production_service.change_status(db_session, order, "quality_check")
    production_service.change_status(db_session, order, "completed")

    assert order.status == "completed"
    assert order.completed_date == today_utc()
    with pytest.raises(InvalidTransitionError):
        production_service.change_status(db_session, order, "on_hold")


def test_same_status_is_a_no_op(db_session):
    order = production_service.create_production_order(
        db_session, schemas.ProductionOrderCreate(product_name="Soap", quantity=10)
    )
    assert production_service.change_status(db_session, order, "planned").status == "planned"


def test_process_status_timestamps(db_session):
    order = production_service.create_production_order(
        db_session, schemas.ProductionOrderCreate(product_name="Soap", quantity=10)
    )
    process = production_repo.create_process(
        db_session, order.id, schemas.ProductionProcessCreate(process_name="Mixing", sequence_order=1)
    )
    production_service.update_process(db_session, process, schemas.ProductionProcessUpdate(status="in_progress"))
    started = process.started_at
    assert started is not None
    production_service.update_process(
        db_session, process, schemas.ProductionProcessUpdate(status="completed", notes="done")
    )
    assert process.completed_at is not None
    assert process.started_at == started
    assert process.notes == "done"
