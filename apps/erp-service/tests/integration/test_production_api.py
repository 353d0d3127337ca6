import uuid


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.full_name}


def _create_order(client, user, **fields):
    payload = {"product_name": "Dish Soap 750ml", "quantity": 1200, **fields}
    resp = client.post("/production-orders/", json=payload, headers=_h(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_production_lifecycle(client, manager_user, customer_factory):
    customer = customer_factory(name="Epsilon Market")
    order = _create_order(client, manager_user, customer_id=str(customer.id), priority=3)
    assert order["status"] == "planned"
    assert order["customer_name"] == "Epsilon Market"
    assert order["start_date"] is None

    path = f"/production-orders/{order['id']}/status"
    started = client.patch(path, json={"status": "in_production"}, headers=_h(manager_user)).json()
    assert started["start_date"] is not None
    assert client.patch(path, json={"status": "on_hold"}, headers=_h(manager_user)).json()["status"] == "on_hold"
    assert client.patch(path, json={"status": "quality_check"}, headers=_h(manager_user)).status_code == 200
    done = client.patch(path, json={"status": "completed"}, headers=_h(manager_user)).json()
    assert done["completed_date"] is not None

    reopened = client.patch(path, json={"status": "planned"}, headers=_h(manager_user))
    assert reopened.status_code == 400
    assert "Cannot change production status" in reopened.json()["detail"]


def test_skipping_steps_is_rejected(client, manager_user):
    order = _create_order(client, manager_user)
    resp = client.patch(
        f"/production-orders/{order['id']}/status", json={"status": "completed"}, headers=_h(manager_user)
    )
    assert resp.status_code == 400


def test_operator_can_update_but_not_create(client, manager_user, operator_user):
    order = _create_order(client, manager_user)
    denied = client.post(
        "/production-orders/", json={"product_name": "X", "quantity": 1}, headers=_h(operator_user)
    )
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Permission denied: production_orders:create"

    updated = client.put(f"/production-orders/{order['id']}", json={"notes": "night shift"}, headers=_h(operator_user))
    assert updated.status_code == 200
    assert updated.json()["notes"] == "night shift"
    assert client.delete(f"/production-orders/{order['id']}", headers=_h(operator_user)).status_code == 403


def test_viewer_reads_only(client, manager_user, viewer_user):
    order = _create_order(client, manager_user)
    assert client.get("/production-orders/", headers=_h(viewer_user)).status_code == 200
    assert client.get(f"/production-orders/{order['id']}", headers=_h(viewer_user)).status_code == 200
    resp = client.patch(
        f"/production-orders/{order['id']}/status", json={"status": "in_production"}, headers=_h(viewer_user)
    )
    assert resp.status_code == 403


def test_duplicate_order_number(client, manager_user):
    _create_order(client, manager_user, order_number="URT-2025-01")
    resp = client.post(
        "/production-orders/",
        json={"order_number": "URT-2025-01", "product_name": "X", "quantity": 1},
        headers=_h(manager_user),
    )
    assert resp.status_code == 409


def test_list_filters(client, manager_user):
    soap = _create_order(client, manager_user, product_name="Soap")
    _create_order(client, manager_user, product_name="Bleach")
    client.patch(f"/production-orders/{soap['id']}/status", json={"status": "on_hold"}, headers=_h(manager_user))

    on_hold = client.get("/production-orders/", params={"status": "on_hold"}, headers=_h(manager_user)).json()
    assert [o["product_name"] for o in on_hold] == ["Soap"]
    found = client.get("/production-orders/", params={"search": "blea"}, headers=_h(manager_user)).json()
    assert [o["product_name"] for o in found] == ["Bleach"]


def test_processes(client, manager_user, operator_user, db_session):
    from erp.db import models

    department = models.Department(name="Filling")
    db_session.add(department)
    db_session.commit()
    order = _create_order(client, manager_user)
    base = f"/production-orders/{order['id']}/processes"

    second = client.post(base, json={"process_name": "Filling", "sequence_order": 2, "assigned_department": str(department.id)}, headers=_h(manager_user))
    first = client.post(base, json={"process_name": "Mixing", "sequence_order": 1}, headers=_h(manager_user))
    assert second.status_code == 201 and first.status_code == 201

    listed = client.get(base, headers=_h(operator_user)).json()
    assert [p["process_name"] for p in listed] == ["Mixing", "Filling"]

    process_id = first.json()["id"]
    started = client.put(f"{base}/{process_id}", json={"status": "in_progress"}, headers=_h(operator_user)).json()
    assert started["started_at"] is not None
    finished = client.put(f"{base}/{process_id}", json={"status": "completed"}, headers=_h(operator_user)).json()
    assert finished["completed_at"] is not None

    detail = client.get(f"/production-orders/{order['id']}", headers=_h(operator_user)).json()
    assert [p["status"] for p in detail["processes"]] == ["completed", "pending"]

    other = _create_order(client, manager_user)
    wrong_parent = client.put(
        f"/production-orders/{other['id']}/processes/{process_id}", json={"notes": "x"}, headers=_h(manager_user)
    )
    assert wrong_parent.status_code == 404
    assert client.delete(f"{base}/{process_id}", headers=_h(operator_user)).status_code == 403
    assert client.delete(f"{base}/{process_id}", headers=_h(manager_user)).status_code == 204
    assert client.get(f"/production-orders/{uuid.uuid4()}/processes", headers=_h(manager_user)).status_code == 404


def test_required_fields_cannot_be_cleared(client, manager_user):
    order = _create_order(client, manager_user)
    path = f"/production-orders/{order['id']}"

    for body in ({"product_name": None}, {"quantity": None}, {"priority": None}):
        assert client.put(path, json=body, headers=_h(manager_user)).status_code == 422

    process = client.post(
        f"{path}/processes", json={"process_name": "Mixing", "sequence_order": 1}, headers=_h(manager_user)
    ).json()
    resp = client.put(f"{path}/processes/{process['id']}", json={"process_name": None}, headers=_h(manager_user))
    assert resp.status_code == 422
    assert client.get(path, headers=_h(manager_user)).json()["product_name"] == "Dish Soap 750ml"


def test_customer_change_refreshes_name(client, manager_user, customer_factory):
    first = customer_factory(name="Zeta Retail")
    second = customer_factory(name="Eta Wholesale")
    order = _create_order(client, manager_user, customer_id=str(first.id))
    path = f"/production-orders/{order['id']}"

    moved = client.put(path, json={"customer_id": str(second.id)}, headers=_h(manager_user))
    assert moved.status_code == 200
    assert moved.json()["customer_name"] == "Eta Wholesale"

    missing = client.put(path, json={"customer_id": str(uuid.uuid4())}, headers=_h(manager_user))
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Customer not found"
    assert client.get(path, headers=_h(manager_user)).json()["customer_id"] == str(second.id)

    cleared = client.put(path, json={"customer_id": None}, headers=_h(manager_user)).json()
    assert (cleared["customer_id"], cleared["customer_name"]) == (None, None)
