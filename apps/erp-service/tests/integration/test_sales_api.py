import uuid

from erp.db import models


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.full_name}


def test_customer_crud_and_search(client, operator_user, viewer_user):
    headers = _h(operator_user)
    created = client.post("/customers/", json={"name": "Acme Kimya", "company": "Acme AS", "email": "info@acme.test"}, headers=headers)
    assert created.status_code == 201
    customer_id = created.json()["id"]
    assert created.json()["created_by"] == str(operator_user.id)
    client.post("/customers/", json={"name": "Beta Temizlik"}, headers=headers)

    found = client.get("/customers/", params={"search": "ACME"}, headers=_h(viewer_user))
    assert [c["name"] for c in found.json()] == ["Acme Kimya"]
    by_email = client.get("/customers/", params={"search": "info@"}, headers=_h(viewer_user))
    assert len(by_email.json()) == 1

    updated = client.put(f"/customers/{customer_id}", json={"phone": "+90 212 000"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["phone"] == "+90 212 000"
    assert updated.json()["name"] == "Acme Kimya"

    assert client.delete(f"/customers/{customer_id}", headers=headers).status_code == 204
    assert client.get(f"/customers/{customer_id}", headers=headers).status_code == 404


def test_viewer_cannot_write_business_records(client, viewer_user):
    resp = client.post("/customers/", json={"name": "Nope"}, headers=_h(viewer_user))
    assert resp.status_code == 403
    resp = client.post("/products/", json={"name": "Nope", "sku": "N-1"}, headers=_h(viewer_user))
    assert resp.status_code == 403


def test_customer_with_orders_cannot_be_deleted(client, operator_user, customer_factory, product_factory, order_factory):
    customer = customer_factory()
    order = order_factory(customer, [(product_factory(), 1, 10)])

    resp = client.delete(f"/customers/{customer.id}", headers=_h(operator_user))
    assert resp.status_code == 409
    orders = client.get(f"/customers/{customer.id}/orders", headers=_h(operator_user)).json()
    assert [o["id"] for o in orders] == [str(order.id)]


def test_product_sku_is_unique(client, operator_user):
    headers = _h(operator_user)
    first = client.post("/products/", json={"name": "Soap", "sku": "SOAP-1", "price": 12.5}, headers=headers)
    assert first.status_code == 201
    dup = client.post("/products/", json={"name": "Soap 2", "sku": "SOAP-1"}, headers=headers)
    assert dup.status_code == 409

    other = client.post("/products/", json={"name": "Gel", "sku": "GEL-1"}, headers=headers).json()
    clash = client.put(f"/products/{other['id']}", json={"sku": "SOAP-1"}, headers=headers)
    assert clash.status_code == 409


def test_product_filters(client, operator_user, product_factory):
    product_factory(name="Low Soap", sku="LS-1", stock=1, min_stock=5, category="soap")
    product_factory(name="Full Gel", sku="FG-1", stock=50, min_stock=5, category="gel")

    low = client.get("/products/", params={"low_stock": True}, headers=_h(operator_user)).json()
    assert [p["sku"] for p in low] == ["LS-1"]
    gel = client.get("/products/", params={"category": "gel"}, headers=_h(operator_user)).json()
    assert [p["sku"] for p in gel] == ["FG-1"]
    search = client.get("/products/", params={"search": "fg-"}, headers=_h(operator_user)).json()
    assert [p["name"] for p in search] == ["Full Gel"]


def test_product_in_orders_cannot_be_deleted(client, operator_user, customer_factory, product_factory, order_factory):
    product = product_factory()
    order_factory(customer_factory(), [(product, 1, 10)])
    assert client.delete(f"/products/{product.id}", headers=_h(operator_user)).status_code == 409


def test_recipe_endpoints(client, operator_user, product_factory, material_factory):
    headers = _h(operator_user)
    product = product_factory()
    base = material_factory(name="Base", cost=2)

    added = client.post(
        f"/products/{product.id}/recipe",
        json={"raw_material_id": str(base.id), "quantity_per_unit": 1.5},
        headers=headers,
    )
    assert added.status_code == 201
    line = added.json()
    assert line["material_name"] == "Base"
    assert line["line_cost"] == 3.0

    dup = client.post(
        f"/products/{product.id}/recipe",
        json={"raw_material_id": str(base.id), "quantity_per_unit": 1},
        headers=headers,
    )
    assert dup.status_code == 409
    missing = client.post(
        f"/products/{product.id}/recipe",
        json={"raw_material_id": str(uuid.uuid4()), "quantity_per_unit": 1},
        headers=headers,
    )
    assert missing.status_code == 404
    zero = client.post(
        f"/products/{product.id}/recipe",
        json={"raw_material_id": str(base.id), "quantity_per_unit": 0},
        headers=headers,
    )
    assert zero.status_code == 422

    changed = client.put(
        f"/products/{product.id}/recipe/{line['id']}", json={"quantity_per_unit": 2}, headers=headers
    )
    assert changed.json()["line_cost"] == 4.0
    recipe = client.get(f"/products/{product.id}/recipe", headers=headers).json()
    assert recipe["unit_cost"] == 4.0

    assert client.delete(f"/products/{product.id}/recipe/{line['id']}", headers=headers).status_code == 204
    assert client.get(f"/products/{product.id}/recipe", headers=headers).json()["lines"] == []


def test_material_transactions(client, operator_user, material_factory):
    headers = _h(operator_user)
    material = material_factory(name="Glycerin", stock=5, min_stock=10)
    assert client.get(f"/raw-materials/{material.id}", headers=headers).json()["stock_status"] == "low"

    bought = client.post(
        f"/raw-materials/{material.id}/transactions",
        json={"transaction_type": "purchase", "quantity": 20, "unit_cost": 3},
        headers=headers,
    )
    assert bought.status_code == 201
    assert client.get(f"/raw-materials/{material.id}", headers=headers).json()["stock"] == 25

    too_much = client.post(
        f"/raw-materials/{material.id}/transactions",
        json={"transaction_type": "consumption", "quantity": 30},
        headers=headers,
    )
    assert too_much.status_code == 409
    assert "Insufficient stock for Glycerin" in too_much.json()["detail"]

    invalid = client.post(
        f"/raw-materials/{material.id}/transactions",
        json={"transaction_type": "purchase", "quantity": 0},
        headers=headers,
    )
    assert invalid.status_code == 400

    history = client.get(f"/raw-materials/{material.id}/transactions", headers=headers).json()
    assert [t["transaction_type"] for t in history] == ["purchase"]


def test_material_sku_unique_and_category_checked(client, operator_user):
    headers = _h(operator_user)
    ok = client.post("/raw-materials/", json={"name": "Bottle", "sku": "BT-1", "category": "packaging"}, headers=headers)
    assert ok.status_code == 201
    assert ok.json()["stock_status"] == "out_of_stock"
    assert client.post("/raw-materials/", json={"name": "Bottle", "sku": "BT-1"}, headers=headers).status_code == 409
    bad = client.post("/raw-materials/", json={"name": "X", "sku": "X-1", "category": "wood"}, headers=headers)
    assert bad.status_code == 422


def test_order_lifecycle(client, operator_user, customer_factory, product_factory):
    headers = _h(operator_user)
    customer = customer_factory(name="Gamma")
    soap = product_factory(name="Soap")
    gel = product_factory(name="Gel")

    created = client.post(
        "/orders/",
        json={
            "customer_id": str(customer.id),
            "items": [
                {"product_id": str(soap.id), "quantity": 10, "unit_price": 5},
                {"product_id": str(gel.id), "quantity": 2, "unit_price": 20, "discount": 5},
            ],
        },
        headers=headers,
    )
    assert created.status_code == 201
    order = created.json()
    assert order["order_number"].startswith("SIP-")
    assert order["customer_name"] == "Gamma"
    assert (order["subtotal"], order["tax"], order["total"]) == (85.0, 17.0, 102.0)
    assert sorted(i["product_name"] for i in order["items"]) == ["Gel", "Soap"]

    dup = client.post(
        "/orders/",
        json={
            "order_number": order["order_number"],
            "customer_id": str(customer.id),
            "items": [{"product_id": str(soap.id), "quantity": 1, "unit_price": 5}],
        },
        headers=headers,
    )
    assert dup.status_code == 409

    status_resp = client.patch(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers)
    assert status_resp.json()["status"] == "shipped"
    bad_status = client.patch(f"/orders/{order['id']}/status", json={"status": "lost"}, headers=headers)
    assert bad_status.status_code == 422

    listed = client.get("/orders/", params={"status": "shipped"}, headers=headers).json()
    assert [o["id"] for o in listed] == [order["id"]]
    assert client.get("/orders/", params={"search": "gamma"}, headers=headers).json()[0]["id"] == order["id"]

    edited = client.put(
        f"/orders/{order['id']}",
        json={"items": [{"product_id": str(gel.id), "quantity": 1, "unit_price": 100}]},
        headers=headers,
    )
    assert edited.json()["total"] == 120.0
    assert len(edited.json()["items"]) == 1

    assert client.delete(f"/orders/{order['id']}", headers=headers).status_code == 204
    assert client.get(f"/orders/{order['id']}", headers=headers).status_code == 404


def test_order_validation(client, operator_user, customer_factory):
    headers = _h(operator_user)
    customer = customer_factory()
    no_items = client.post("/orders/", json={"customer_id": str(customer.id), "items": []}, headers=headers)
    assert no_items.status_code == 422
    unknown_product = client.post(
        "/orders/",
        json={"customer_id": str(customer.id), "items": [{"product_id": str(uuid.uuid4()), "quantity": 1, "unit_price": 1}]},
        headers=headers,
    )
    assert unknown_product.status_code == 400


def test_consume_materials_endpoint(
    client, db_session, operator_user, customer_factory, product_factory, material_factory, recipe_factory, order_factory
):
    headers = _h(operator_user)
    product = product_factory()
    base = material_factory(name="Base", stock=10)
    recipe_factory(product, base, 2)
    order = order_factory(customer_factory(), [(product, 3, 10)])

    resp = client.post(f"/orders/{order.id}/consume-materials", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["order_id"] == str(order.id)
    assert [t["quantity"] for t in body["transactions"]] == [6.0]

    again = client.post(f"/orders/{order.id}/consume-materials", headers=headers)
    assert again.status_code == 409

    db_session.expire_all()
    assert db_session.get(models.RawMaterial, base.id).stock == 4.0
    assert client.post(f"/orders/{uuid.uuid4()}/consume-materials", headers=headers).status_code == 404


def test_consume_materials_shortage(
    client, operator_user, customer_factory, product_factory, material_factory, recipe_factory, order_factory
):
    product = product_factory()
    recipe_factory(product, material_factory(name="Rare", stock=1), 1)
    order = order_factory(customer_factory(), [(product, 5, 10)])

    resp = client.post(f"/orders/{order.id}/consume-materials", headers=_h(operator_user))

    assert resp.status_code == 409
    assert resp.json()["detail"] == "Insufficient stock for Rare: required 5, available 1"


def test_required_fields_cannot_be_cleared(client, operator_user, customer_factory, product_factory, material_factory, order_factory):
    headers = _h(operator_user)
    customer = customer_factory()
    product = product_factory(name="Degreaser", sku="DG-1")
    material = material_factory(name="Solvent", sku="SV-1")
    order = order_factory(customer, [(product, 1, 10)])

    for path, body in [
        (f"/customers/{customer.id}", {"name": None}),
        (f"/products/{product.id}", {"sku": None}),
        (f"/products/{product.id}", {"price": None}),
        (f"/raw-materials/{material.id}", {"min_stock": None}),
        (f"/raw-materials/{material.id}", {"category": None}),
        (f"/orders/{order.id}", {"order_date": None}),
        (f"/orders/{order.id}", {"status": None}),
    ]:
        resp = client.put(path, json=body, headers=headers)
        assert resp.status_code == 422, (path, body)

    assert client.get(f"/customers/{customer.id}", headers=headers).json()["name"] == "Acme Kimya"
    assert client.get(f"/products/{product.id}", headers=headers).json()["sku"] == "DG-1"
    assert client.get(f"/orders/{order.id}", headers=headers).json()["order_date"] is not None

    # Nullable columns can still be cleared
    cleared = client.put(f"/raw-materials/{material.id}", json={"supplier": None}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["supplier"] is None
