import csv
import io
import uuid

from erp.db import models


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.full_name}


# Users

def test_user_listing_is_admin_only(client, admin_user, manager_user):
    assert client.get("/users/", headers=_h(manager_user)).status_code == 403
    emails = {u["email"] for u in client.get("/users/", headers=_h(admin_user)).json()}
    assert emails == {"admin@example.com", "manager@example.com"}


def test_profile_self_service(client, operator_user):
    me = client.get("/users/me", headers=_h(operator_user)).json()
    assert me["role"] == "operator"

    updated = client.put("/users/me", json={"phone": "+90 555 0000", "full_name": "Okan O."}, headers=_h(operator_user))
    assert updated.status_code == 200
    assert updated.json()["full_name"] == "Okan O."
    assert updated.json()["phone"] == "+90 555 0000"


def test_user_lookup_rules(client, manager_user, operator_user, viewer_user):
    assert client.get(f"/users/{viewer_user.id}", headers=_h(viewer_user)).status_code == 200
    assert client.get(f"/users/{operator_user.id}", headers=_h(viewer_user)).status_code == 403
    assert client.get(f"/users/{operator_user.id}", headers=_h(manager_user)).json()["email"] == "operator@example.com"
    assert client.get(f"/users/{uuid.uuid4()}", headers=_h(manager_user)).status_code == 404


def test_role_changes(client, admin_user, viewer_user):
    promoted = client.put(f"/users/{viewer_user.id}/role", json={"role": "operator"}, headers=_h(admin_user))
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "operator"

    assert client.put(f"/users/{viewer_user.id}/role", json={"role": "owner"}, headers=_h(admin_user)).status_code == 422
    assert client.put(f"/users/{admin_user.id}/role", json={"role": "viewer"}, headers=_h(viewer_user)).status_code == 403
    assert client.put(f"/users/{uuid.uuid4()}/role", json={"role": "viewer"}, headers=_h(admin_user)).status_code == 404


def test_last_admin_cannot_step_down(client, admin_user, user_factory):
    resp = client.put(f"/users/{admin_user.id}/role", json={"role": "manager"}, headers=_h(admin_user))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot remove the last admin"

    user_factory(role="admin")
    resp = client.put(f"/users/{admin_user.id}/role", json={"role": "manager"}, headers=_h(admin_user))
    assert resp.status_code == 200
    assert resp.json()["role"] == "manager"


def test_role_change_is_audited(client, db_session, admin_user, viewer_user):
    client.put(f"/users/{viewer_user.id}/role", json={"role": "manager"}, headers=_h(admin_user))
    entry = db_session.query(models.AuditLog).filter(models.AuditLog.table_name == "user_roles").one()
    assert entry.old_data == {"user_id": str(viewer_user.id), "role": "viewer"}
    assert entry.new_data["role"] == "manager"
    assert entry.user_id == admin_user.id


def test_assign_department(client, admin_user, operator_user):
    dept = client.post("/departments/", json={"name": "Quality"}, headers=_h(admin_user)).json()

    resp = client.put(f"/users/{operator_user.id}/department", json={"department_id": dept["id"]}, headers=_h(admin_user))
    assert resp.json()["department_name"] == "Quality"
    cleared = client.put(f"/users/{operator_user.id}/department", json={"department_id": None}, headers=_h(admin_user))
    assert cleared.json()["department_id"] is None
    missing = client.put(
        f"/users/{operator_user.id}/department", json={"department_id": str(uuid.uuid4())}, headers=_h(admin_user)
    )
    assert missing.status_code == 404


# Departments

def test_department_crud(client, admin_user, manager_user, viewer_user):
    created = client.post("/departments/", json={"name": "Filling", "manager_id": str(manager_user.id)}, headers=_h(admin_user))
    assert created.status_code == 201
    dept_id = created.json()["id"]

    assert client.post("/departments/", json={"name": "filling"}, headers=_h(admin_user)).status_code == 409
    assert client.post("/departments/", json={"name": "Mixing"}, headers=_h(manager_user)).status_code == 403
    assert client.post("/departments/", json={"name": "Ghost", "manager_id": str(uuid.uuid4())}, headers=_h(admin_user)).status_code == 400

    renamed = client.put(f"/departments/{dept_id}", json={"description": "Bottling lines"}, headers=_h(manager_user))
    assert renamed.json()["description"] == "Bottling lines"
    assert [d["name"] for d in client.get("/departments/", headers=_h(viewer_user)).json()] == ["Filling"]

    assert client.delete(f"/departments/{dept_id}", headers=_h(manager_user)).status_code == 403
    assert client.delete(f"/departments/{dept_id}", headers=_h(admin_user)).status_code == 204
    assert client.get(f"/departments/{dept_id}", headers=_h(admin_user)).status_code == 404


def test_department_name_cannot_be_cleared(client, admin_user):
    dept = client.post("/departments/", json={"name": "Labelling"}, headers=_h(admin_user)).json()
    resp = client.put(f"/departments/{dept['id']}", json={"name": None}, headers=_h(admin_user))
    assert resp.status_code == 422
    cleared = client.put(f"/departments/{dept['id']}", json={"description": None}, headers=_h(admin_user))
    assert cleared.json()["name"] == "Labelling"


def test_department_stats(client, db_session, admin_user):
    dept = models.Department(name="Packaging")
    db_session.add(dept)
    db_session.flush()
    order = models.ProductionOrder(order_number="P-9", product_name="Soap", quantity=10, status="planned")
    db_session.add(order)
    db_session.flush()
    process = models.ProductionProcess(order_id=order.id, process_name="Boxing", sequence_order=1, assigned_department=dept.id)
    db_session.add(process)
    db_session.flush()
    db_session.add_all(
        [
            models.Task(title="Box A", status="completed", production_process_id=process.id),
            models.Task(title="Box B", status="pending", production_process_id=process.id),
            models.Task(title="Box C", status="completed", production_process_id=process.id),
            models.Task(title="Box D", status="in_progress", production_process_id=process.id),
        ]
    )
    db_session.commit()

    (stats,) = client.get("/departments/stats", headers=_h(admin_user)).json()
    assert stats["name"] == "Packaging"
    assert stats["process_count"] == 1
    assert (stats["active_tasks"], stats["completed_tasks"], stats["completion_rate"]) == (2, 2, 50)


# Role permission matrix

def test_matrix_listing(client, viewer_user):
    rows = client.get("/role-permissions/", headers=_h(viewer_user)).json()
    assert len(rows) == 28
    assert (rows[0]["role"], rows[0]["resource"]) == ("admin", "tasks")


def test_matrix_edit_takes_effect(client, admin_user, viewer_user):
    assert client.post("/tasks/", json={"title": "x"}, headers=_h(viewer_user)).status_code == 403

    resp = client.put("/role-permissions/viewer/tasks", json={"can_create": True}, headers=_h(admin_user))
    assert resp.status_code == 200
    assert resp.json()["can_create"] is True
    assert resp.json()["can_read"] is True
    assert client.post("/tasks/", json={"title": "x"}, headers=_h(viewer_user)).status_code == 201

    reset = client.post("/role-permissions/reset", headers=_h(admin_user))
    assert reset.status_code == 200
    assert client.post("/tasks/", json={"title": "x"}, headers=_h(viewer_user)).status_code == 403


def test_matrix_edit_validation(client, admin_user, manager_user):
    assert client.put("/role-permissions/owner/tasks", json={}, headers=_h(admin_user)).status_code == 400
    assert client.put("/role-permissions/viewer/widgets", json={}, headers=_h(admin_user)).status_code == 400
    assert client.put("/role-permissions/viewer/tasks", json={"can_read": False}, headers=_h(manager_user)).status_code == 403
    assert client.post("/role-permissions/reset", headers=_h(manager_user)).status_code == 403


# Audit logs

def test_audit_trail_for_business_writes(client, manager_user, operator_user):
    created = client.post("/customers/", json={"name": "Audit Co"}, headers=_h(manager_user)).json()
    client.put(f"/customers/{created['id']}", json={"phone": "123"}, headers=_h(manager_user))

    logs = client.get("/audits/", params={"table_name": "customers"}, headers=_h(manager_user)).json()
    assert [entry["action"] for entry in logs] == ["UPDATE", "CREATE"]
    assert logs[0]["user_email"] == "manager@example.com"
    assert logs[0]["user_name"] == "Mert Manager"
    assert logs[0]["record_id"] == created["id"]

    detail = client.get(f"/audits/{logs[0]['id']}", headers=_h(manager_user)).json()
    changed = {c["field"]: c for c in detail["changed_fields"]}
    assert changed["phone"]["old_value"] is None
    assert changed["phone"]["new_value"] == "123"

    assert client.get("/audits/", headers=_h(operator_user)).status_code == 403
    assert client.get(f"/audits/{uuid.uuid4()}", headers=_h(manager_user)).status_code == 404


def test_audit_filters_and_recent(client, manager_user):
    client.post("/customers/", json={"name": "One"}, headers=_h(manager_user))
    client.post("/departments/", json={"name": "Nope"}, headers=_h(manager_user))
    created = client.post("/products/", json={"name": "Two", "sku": "T-2"}, headers=_h(manager_user)).json()
    client.delete(f"/products/{created['id']}", headers=_h(manager_user))

    deletes = client.get("/audits/", params={"action": "DELETE"}, headers=_h(manager_user)).json()
    assert [e["table_name"] for e in deletes] == ["products"]
    recent = client.get("/audits/recent", headers=_h(manager_user)).json()
    assert len(recent) == 3


def test_audit_export_csv(client, manager_user):
    client.post("/customers/", json={"name": "Csv Ltd"}, headers=_h(manager_user))

    resp = client.get("/audits/export", headers=_h(manager_user))

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "audit-logs.csv" in resp.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["date", "user", "action", "table", "record_id", "changed_fields"]
    assert rows[1][1:4] == ["manager@example.com", "CREATE", "customers"]
    assert '"name"' in rows[1][5]


# Dashboard

def test_dashboard_stats(client, viewer_user, customer_factory, product_factory, order_factory):
    customer = customer_factory()
    order_factory(customer, [(product_factory(stock=1, min_stock=5), 2, 50)])

    stats = client.get("/dashboard/stats", headers=_h(viewer_user)).json()

    assert stats["customers"]["total"] == 1
    assert stats["orders"]["total"] == 1
    assert stats["revenue"]["current_month"] == 120.0
    assert stats["products"]["low_stock_count"] == 1
    assert len(stats["recent_orders"]) == 1


def test_admin_stats(client, admin_user, viewer_user, manager_user):
    client.post("/tasks/", json={"title": "count me"}, headers=_h(manager_user))
    client.post("/production-orders/", json={"product_name": "Soap", "quantity": 5}, headers=_h(manager_user))

    assert client.get("/dashboard/admin-stats", headers=_h(viewer_user)).status_code == 403
    stats = client.get("/dashboard/admin-stats", headers=_h(admin_user)).json()
    assert stats["tasks"]["total"] == 1
    assert stats["tasks"]["pending"] == 1
    assert stats["production_orders"]["active"] == 1
    assert stats["users"] == 3
    assert stats["departments"] == 0
