import re
import uuid

import pytest

from erp.db import models, schemas
from erp.services import order_service
from erp.services.errors import ConflictError


def test_line_total_applies_discount():
    assert order_service.line_total(3, 19.99, 5) == 54.97
    assert order_service.line_total(2, 10) == 20.0


def test_compute_totals_adds_twenty_percent_tax():
    subtotal, tax, total = order_service.compute_totals([100.0, 50.5])
    assert subtotal == 150.5
    assert tax == 30.1
    assert total == 180.6


def test_compute_totals_empty():
    assert order_service.compute_totals([]) == (0.0, 0.0, 0.0)


def test_create_order_generates_number_and_totals(db_session, customer_factory, product_factory):
    customer = customer_factory()
    product = product_factory(price=25)
    payload = schemas.OrderCreate(
        customer_id=customer.id,
        items=[schemas.OrderItemCreate(product_id=product.id, quantity=4, unit_price=25, discount=10)],
    )

    order = order_service.create_order(db_session, payload)

    assert re.fullmatch(r"SIP-\d+", order.order_number)
    assert order.status == "pending"
    assert [item.total for item in order.items] == [90.0]
    assert (order.subtotal, order.tax, order.total) == (90.0, 18.0, 108.0)


def test_create_order_rejects_duplicate_number(db_session, customer_factory, product_factory):
    customer = customer_factory()
    product = product_factory()
    payload = schemas.OrderCreate(
        order_number="SIP-1",
        customer_id=customer.id,
        items=[schemas.OrderItemCreate(product_id=product.id, quantity=1, unit_price=10)],
    )
    order_service.create_order(db_session, payload)
    with pytest.raises(ConflictError):
        order_service.create_order(db_session, payload)


def test_create_order_unknown_customer_or_product(db_session, customer_factory):
    item = schemas.OrderItemCreate(product_id=uuid.uuid4(), quantity=1, unit_price=10)
    with pytest.raises(ValueError, match="Customer not found"):
        order_service.create_order(db_session, schemas.OrderCreate(customer_id=uuid.uuid4(), items=[item]))

    customer = customer_factory()
    with pytest.raises(ValueError, match="Unknown product"):
        order_service.create_order(db_session, schemas.OrderCreate(customer_id=customer.id, items=[item]))


def test_discount_larger_than_line_is_rejected(db_session, customer_factory, product_factory):
    customer = customer_factory()
    product = product_factory()
    payload = schemas.OrderCreate(
        customer_id=customer.id,
        items=[schemas.OrderItemCreate(product_id=product.id, quantity=1, unit_price=10, discount=11)],
    )
    with pytest.raises(ValueError, match="Discount"):
        order_service.create_order(db_session, payload)
    assert db_session.query(models.Order).count() == 0


def test_update_replaces_items_and_recomputes(db_session, customer_factory, product_factory, order_factory):
    customer = customer_factory()
    first = product_factory(name="First")
    second = product_factory(name="Second")
    order = order_factory(customer, [(first, 1, 100)])

    updated = order_service.update_order(
        db_session,
        order,
        schemas.OrderUpdate(
            notes="rush",
            items=[schemas.OrderItemCreate(product_id=second.id, quantity=2, unit_price=30)],
        ),
    )

    assert updated.notes == "rush"
    assert [item.product_id for item in updated.items] == [second.id]
    assert (updated.subtotal, updated.tax, updated.total) == (60.0, 12.0, 72.0)
    assert db_session.query(models.OrderItem).count() == 1


def test_update_header_only_keeps_totals(db_session, customer_factory, product_factory, order_factory):
    customer = customer_factory()
    order = order_factory(customer, [(product_factory(), 2, 50)])
    updated = order_service.update_order(db_session, order, schemas.OrderUpdate(status="confirmed"))
    assert updated.status == "confirmed"
    assert updated.total == 120.0


def test_generate_order_number_skips_taken(db_session, customer_factory, product_factory, monkeypatch):
    monkeypatch.setattr(order_service.time, "time", lambda: 1700000000.0)
    customer = customer_factory()
    product = product_factory()
    item = schemas.OrderItemCreate(product_id=product.id, quantity=1, unit_price=1)
    order_service.create_order(
        db_session, schemas.OrderCreate(order_number="SIP-1700000000000", customer_id=customer.id, items=[item])
    )
    assert order_service.generate_order_number(db_session) == "SIP-1700000000001"
