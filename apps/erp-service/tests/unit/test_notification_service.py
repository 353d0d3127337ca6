from datetime import datetime, timedelta, UTC

import pytest

from erp.db import models
from erp.services.notification_service import (
    EVENT_TASK_ASSIGNED,
    EVENT_TASK_COMPLETED,
    NotificationService,
    priority_label,
)
from erp.utils.feature_flags import refresh_feature_flag_cache


@pytest.fixture
def task_with_assignee(db_session, user_factory):
    creator = user_factory(email="creator@example.com", role="manager", full_name="Cem Creator")
    assignee = user_factory(email="assignee@example.com", role="operator", full_name="Ada Assignee")
    task = models.Task(title="Mix batch 7", priority=4, created_by=creator.id)
    db_session.add(task)
    db_session.flush()
    db_session.add(models.TaskAssignment(task_id=task.id, assigned_to=assignee.id, assigned_by=creator.id))
    db_session.commit()
    db_session.refresh(task)
    return task, creator, assignee


def test_priority_label():
    assert priority_label(1) == "Low"
    assert priority_label(5) == "Critical"
    assert priority_label(None) == "Normal"


def test_preferences_default_to_enabled(db_session, user_factory):
    user = user_factory()
    svc = NotificationService(db_session)
    prefs = svc.get_user_preferences(user.id)
    assert set(prefs) == {"task_assigned", "task_updated", "task_completed"}
    assert all(p == {"email_enabled": True, "in_app_enabled": True} for p in prefs.values())


def test_set_preference_upserts(db_session, user_factory):
    user = user_factory()
    svc = NotificationService(db_session)
    svc.set_user_preference(user.id, EVENT_TASK_ASSIGNED, email_enabled=False)
    svc.set_user_preference(user.id, EVENT_TASK_ASSIGNED, in_app_enabled=False)

    assert svc.get_user_preferences(user.id)[EVENT_TASK_ASSIGNED] == {"email_enabled": False, "in_app_enabled": False}
    assert db_session.query(models.UserNotificationPreference).count() == 1
    with pytest.raises(ValueError):
        svc.set_user_preference(user.id, "invitation_received", email_enabled=False)


def test_notify_task_assigned_creates_notification_and_email(db_session, task_with_assignee, email_outbox):
    task, creator, assignee = task_with_assignee
    svc = NotificationService(db_session)

    result = svc.notify_task_assigned(task, [assignee], assigner=creator)

    assert result == {"sent": 1, "failed": 0}
    notes = svc.get_user_notifications(assignee.id)
    assert [n.type for n in notes] == [EVENT_TASK_ASSIGNED]
    assert notes[0].message == '"Mix batch 7" has been assigned to you'
    assert notes[0].expires_at is not None
    assert email_outbox.sent[0]["to"] == "assignee@example.com"
    assert email_outbox.sent[0]["subject"] == "New Task Assigned: Mix batch 7"
    log = svc.get_email_logs(assignee.id)[0]
    assert log.status == "sent"
    assert log.provider_message_id == "msg-1"
    assert log.sent_at is not None


def test_failed_email_is_logged(db_session, task_with_assignee, email_outbox):
    task, creator, assignee = task_with_assignee
    email_outbox.fail = True
    svc = NotificationService(db_session)

    assert svc.send_task_assigned_emails(task, [assignee], creator) == {"sent": 0, "failed": 1}
    log = svc.get_email_logs(assignee.id)[0]
    assert log.status == "failed"
    assert log.error_message == "provider rejected the message"


def test_render_errors_mark_the_log_failed(db_session, task_with_assignee, email_outbox, monkeypatch):
    task, creator, assignee = task_with_assignee

    def _boom(name, context):
        raise RuntimeError("template missing")

    monkeypatch.setattr(email_outbox, "render_template", _boom)
    svc = NotificationService(db_session)

    assert svc.send_task_assigned_emails(task, [assignee], creator) == {"sent": 0, "failed": 1}
    assert "template missing" in svc.get_email_logs(assignee.id)[0].error_message


def test_opted_out_user_gets_no_email(db_session, task_with_assignee, email_outbox):
    task, creator, assignee = task_with_assignee
    svc = NotificationService(db_session)
    svc.set_user_preference(assignee.id, EVENT_TASK_ASSIGNED, email_enabled=False)

    assert svc.notify_task_assigned(task, [assignee], assigner=creator) == {"sent": 0, "failed": 0}
    assert email_outbox.sent == []
    assert svc.get_unread_count(assignee.id) == 1


def test_email_flag_off_skips_email(db_session, task_with_assignee, email_outbox, monkeypatch):
    task, creator, assignee = task_with_assignee
    monkeypatch.setenv("EMAIL_NOTIFICATIONS_ENABLED", "false")
    refresh_feature_flag_cache()

    assert NotificationService(db_session).notify_task_assigned(task, [assignee], assigner=creator) is None
    assert email_outbox.sent == []


def test_task_flag_off_skips_in_app(db_session, task_with_assignee, monkeypatch):
    task, creator, assignee = task_with_assignee
    monkeypatch.setenv("TASK_NOTIFICATIONS_ENABLED", "false")
    refresh_feature_flag_cache()
    svc = NotificationService(db_session)

    svc.notify_task_assigned(task, [assignee], assigner=creator, send_email=False)

    assert svc.get_total_count(assignee.id) == 0
    assert svc.notify_task_status_changed(task, actor_id=None) == 0


def test_status_change_skips_the_actor(db_session, task_with_assignee):
    task, creator, assignee = task_with_assignee
    svc = NotificationService(db_session)
    task.status = "in_progress"
    db_session.commit()

    assert svc.notify_task_status_changed(task, actor_id=assignee.id) == 0
    assert svc.notify_task_status_changed(task, actor_id=creator.id) == 1
    note = svc.get_user_notifications(assignee.id)[0]
    assert note.message == '"Mix batch 7" status changed to in_progress'


def test_assignment_completed_notifies_creator(db_session, task_with_assignee, email_outbox):
    task, creator, assignee = task_with_assignee
    svc = NotificationService(db_session)

    note = svc.notify_assignment_completed(task, assignee)

    assert note.user_id == creator.id
    assert note.type == EVENT_TASK_COMPLETED
    assert note.message == 'Ada Assignee completed "Mix batch 7"'
    assert email_outbox.sent[0]["to"] == "creator@example.com"
    assert svc.notify_assignment_completed(task, creator) is None


def test_read_tracking(db_session, user_factory):
    user = user_factory()
    other = user_factory()
    svc = NotificationService(db_session)
    first = svc.create_notification(user.id, EVENT_TASK_ASSIGNED, "t", "m")
    svc.create_notification(user.id, EVENT_TASK_ASSIGNED, "t", "m")

    assert svc.mark_notification_read(first.id, other.id) is False
    assert svc.mark_notification_read(first.id, user.id) is True
    assert svc.get_unread_count(user.id) == 1
    assert len(svc.get_user_notifications(user.id, unread_only=True)) == 1
    assert svc.mark_all_read(user.id) == 1
    assert svc.get_unread_count(user.id) == 0
    assert svc.get_total_count(user.id) == 2


def test_cleanup_removes_only_expired(db_session, user_factory):
    user = user_factory()
    svc = NotificationService(db_session)
    svc.create_notification(user.id, EVENT_TASK_ASSIGNED, "old", "m", expires_days=-1)
    svc.create_notification(user.id, EVENT_TASK_ASSIGNED, "new", "m")

    assert svc.get_total_count(user.id) == 1
    assert svc.cleanup_expired_notifications() == 1
    remaining = db_session.query(models.Notification).all()
    assert [n.title for n in remaining] == ["new"]
    assert remaining[0].expires_at.replace(tzinfo=UTC) > datetime.now(UTC) + timedelta(days=29)
