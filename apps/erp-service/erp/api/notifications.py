"""
Notification API Endpoints

In-app task notifications, per-type email/in-app preferences, and the
manual task-assignment email resend.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.db import schemas
from erp.api.deps import get_current_user_context, require_admin, require_manager
from erp.db.repositories import tasks as task_repo
from erp.db.repositories import users as user_repo
from erp.services.notification_service import NotificationService, EVENT_TYPES


router = APIRouter(tags=["notifications"])


@router.get("/", response_model=schemas.NotificationListResponse)
def get_notifications(
    unread_only: bool = False,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notifications for the current user.

    - **unread_only**: If true, only return unread notifications
    - **limit**: Maximum number of notifications to return (default 10)
    """
    user, current_user = user_context

    service = NotificationService(db)
    notifications = service.get_user_notifications(
        user_id=user.id,
        unread_only=unread_only,
        limit=limit
    )

    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=service.get_unread_count(user.id),
        total_count=service.get_total_count(user.id)
    )


@router.get("/stats", response_model=schemas.NotificationStatsResponse)
def get_notification_stats(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    service = NotificationService(db)
    return schemas.NotificationStatsResponse(
        unread_count=service.get_unread_count(user.id),
        total_notifications=service.get_total_count(user.id),
    )


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Mark a specific notification as read.
    """
    user, current_user = user_context

    service = NotificationService(db)
    success = service.mark_notification_read(notification_id, user.id)

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.post("/read-all", response_model=schemas.MarkAllReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    updated = NotificationService(db).mark_all_read(user.id)
    return schemas.MarkAllReadResponse(updated=updated)


@router.get("/preferences", response_model=schemas.NotificationPreferencesResponse)
def get_notification_preferences(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notification preferences for the current user.
    """
    user, current_user = user_context

    service = NotificationService(db)
    return schemas.NotificationPreferencesResponse(preferences=service.get_user_preferences(user.id))


@router.put("/preferences/{notification_type}", response_model=schemas.UserNotificationPreference)
def update_notification_preference(
    notification_type: str,
    preference_update: schemas.UserNotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Update notification preferences for one notification type.

    Available types:
    - task_assigned
    - task_updated
    - task_completed

    Omitted toggles keep their current value.
    """
    user, current_user = user_context

    if notification_type not in EVENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid notification type. Must be one of: {', '.join(EVENT_TYPES)}"
        )

    service = NotificationService(db)
    return service.set_user_preference(
        user_id=user.id,
        notification_type=notification_type,
        email_enabled=preference_update.email_enabled,
        in_app_enabled=preference_update.in_app_enabled
    )


@router.post("/cleanup")
def cleanup_expired_notifications(
    db: Session = Depends(get_db),
    user_context = Depends(require_admin)
):
    """Delete notifications past their expiry date (admin only)."""
    removed = NotificationService(db).cleanup_expired_notifications()
    return {"removed": removed}


@router.post("/task-email", response_model=schemas.EmailDispatchResult)
def send_task_email(
    payload: schemas.TaskEmailRequest,
    db: Session = Depends(get_db),
    user_context = Depends(require_manager)
):
    """Re-send the task-assigned email for a task to the given users."""
    user, current_user = user_context

    task = task_repo.get_task(db, payload.task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    recipients = user_repo.get_users_by_ids(db, payload.assignee_ids)
    if len(recipients) != len(set(payload.assignee_ids)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown recipient(s)")

    assigner = task.creator or user
    return NotificationService(db).send_task_assigned_emails(task, recipients, assigner)
