import uuid
from datetime import datetime, timedelta, UTC

from erp.db import models
from erp.services.notification_service import NotificationService


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.full_name}


def _notify(db_session, user, title="Ping"):
    return NotificationService(db_session).create_notification(user.id, "task_updated", title, f"{title} message")


def test_list_and_stats(client, db_session, operator_user, viewer_user):
    _notify(db_session, operator_user, "First")
    _notify(db_session, operator_user, "Second")
    _notify(db_session, viewer_user, "Other")

    body = client.get("/notifications/", headers=_h(operator_user)).json()
    assert body["unread_count"] == 2
    assert body["total_count"] == 2
    assert sorted(n["title"] for n in body["notifications"]) == ["First", "Second"]

    stats = client.get("/notifications/stats", headers=_h(operator_user)).json()
    assert stats == {"unread_count": 2, "total_notifications": 2}


def test_mark_read(client, db_session, operator_user, viewer_user):
    mine = _notify(db_session, operator_user)
    theirs = _notify(db_session, viewer_user)

    assert client.post(f"/notifications/{mine.id}/read", headers=_h(operator_user)).status_code == 204
    assert client.post(f"/notifications/{theirs.id}/read", headers=_h(operator_user)).status_code == 404
    assert client.post(f"/notifications/{uuid.uuid4()}/read", headers=_h(operator_user)).status_code == 404

    unread = client.get("/notifications/", params={"unread_only": True}, headers=_h(operator_user)).json()
    assert unread["notifications"] == []
    assert unread["total_count"] == 1


def test_mark_all_read(client, db_session, operator_user):
    for title in ("a", "b", "c"):
        _notify(db_session, operator_user, title)
    resp = client.post("/notifications/read-all", headers=_h(operator_user))
    assert resp.json() == {"updated": 3}
    assert client.get("/notifications/stats", headers=_h(operator_user)).json()["unread_count"] == 0


def test_preferences(client, operator_user):
    prefs = client.get("/notifications/preferences", headers=_h(operator_user)).json()["preferences"]
    assert set(prefs) == {"task_assigned", "task_updated", "task_completed"}
    assert prefs["task_assigned"] == {"email_enabled": True, "in_app_enabled": True}

    updated = client.put(
        "/notifications/preferences/task_assigned", json={"email_enabled": False}, headers=_h(operator_user)
    )
    assert updated.status_code == 200
    assert updated.json()["email_enabled"] is False
    assert updated.json()["in_app_enabled"] is True

    prefs = client.get("/notifications/preferences", headers=_h(operator_user)).json()["preferences"]
    assert prefs["task_assigned"]["email_enabled"] is False

    bad = client.put("/notifications/preferences/newsletter", json={"email_enabled": False}, headers=_h(operator_user))
    assert bad.status_code == 400


def test_email_opt_out_skips_assignment_mail(client, manager_user, operator_user, email_outbox):
    client.put("/notifications/preferences/task_assigned", json={"email_enabled": False}, headers=_h(operator_user))
    resp = client.post(
        "/tasks/", json={"title": "Label check", "assignee_ids": [str(operator_user.id)]}, headers=_h(manager_user)
    )
    assert resp.json()["email"] == {"sent": 0, "failed": 0}
    assert email_outbox.sent == []


def test_cleanup_is_admin_only(client, db_session, admin_user, operator_user):
    db_session.add(
        models.Notification(
            user_id=operator_user.id,
            type="task_updated",
            title="Old",
            message="Old",
            expires_at=datetime.now(UTC) - timedelta(days=1),
        )
    )
    db_session.commit()
    _notify(db_session, operator_user, "Fresh")

    assert client.post("/notifications/cleanup", headers=_h(operator_user)).status_code == 403
    assert client.post("/notifications/cleanup", headers=_h(admin_user)).json() == {"removed": 1}
    assert db_session.query(models.Notification).count() == 1


def test_resend_task_email(client, db_session, manager_user, operator_user, viewer_user, email_outbox):
    task = client.post(
        "/tasks/",
        json={"title": "Restock", "assignee_ids": [str(operator_user.id)], "send_email": False},
        headers=_h(manager_user),
    ).json()["task"]
    payload = {"task_id": task["id"], "assignee_ids": [str(operator_user.id)]}

    assert client.post("/notifications/task-email", json=payload, headers=_h(viewer_user)).status_code == 403
    resp = client.post("/notifications/task-email", json=payload, headers=_h(manager_user))
    assert resp.json() == {"sent": 1, "failed": 0}
    assert [m["to"] for m in email_outbox.sent] == ["operator@example.com"]

    unknown = client.post(
        "/notifications/task-email",
        json={"task_id": task["id"], "assignee_ids": [str(uuid.uuid4())]},
        headers=_h(manager_user),
    )
    assert unknown.status_code == 400
    missing = client.post(
        "/notifications/task-email",
        json={"task_id": str(uuid.uuid4()), "assignee_ids": [str(operator_user.id)]},
        headers=_h(manager_user),
    )
    assert missing.status_code == 404
