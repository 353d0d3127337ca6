"""
Notification service: in-app task notifications, preferences, and email dispatch.
Centralizes notification rules so every task flow behaves the same way.
"""

import asyncio
import logging
import os
import uuid
from datetime import datetime, timedelta, UTC
from typing import Optional, List, Dict, Any, Iterable

from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, desc

from erp.db import models
from erp.utils.feature_flags import email_notifications_enabled, task_notifications_enabled
from erp.utils.urls import build_task_url

logger = logging.getLogger(__name__)

# Notification type constants
EVENT_TASK_ASSIGNED = 'task_assigned'
EVENT_TASK_UPDATED = 'task_updated'
EVENT_TASK_COMPLETED = 'task_completed'
EVENT_TYPES = (EVENT_TASK_ASSIGNED, EVENT_TASK_UPDATED, EVENT_TASK_COMPLETED)

# Template name constants (match template file names)
TEMPLATE_TASK_ASSIGNED = 'task_assigned'
TEMPLATE_TASK_COMPLETED = 'task_completed'

PRIORITY_LABELS = {1: 'Low', 2: 'Normal', 3: 'High', 4: 'Urgent', 5: 'Critical'}

NOTIFICATION_TTL_DAYS = 30


def priority_label(priority: Optional[int]) -> str:
    return PRIORITY_LABELS.get(priority or 2, 'Normal')


def _display_name(user: Optional[models.User]) -> str:
    if user is None:
        return 'A team member'
    return (user.full_name or '').strip() or user.email


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, email_service: Optional[Any] = None):
        self.db = db
        if email_service is not None:
            self.email_service = email_service
        else:
            # Resolved through the module so tests can patch the factory
            from erp.services import transactional_email_service
            self.email_service = transactional_email_service.get_transactional_email_service()

    # === User Preference Management ===

    def get_user_preferences(self, user_id: uuid.UUID) -> Dict[str, Dict[str, bool]]:
        """
        Get notification preferences for every task event type.

        Types without a stored row default to email and in-app enabled.
        """
        preferences = {event: {'email_enabled': True, 'in_app_enabled': True} for event in EVENT_TYPES}
        rows = self.db.query(models.UserNotificationPreference).filter(
            models.UserNotificationPreference.user_id == user_id
        ).all()
        for pref in rows:
            if pref.notification_type in preferences:
                preferences[pref.notification_type] = {
                    'email_enabled': pref.email_enabled,
                    'in_app_enabled': pref.in_app_enabled,
                }
        return preferences

    def set_user_preference(
        self,
        user_id: uuid.UUID,
        notification_type: str,
        email_enabled: Optional[bool] = None,
        in_app_enabled: Optional[bool] = None,
    ) -> models.UserNotificationPreference:
        if notification_type not in EVENT_TYPES:
            raise ValueError(f"Unknown notification type: {notification_type}")
        existing = self.db.query(models.UserNotificationPreference).filter(
            and_(
                models.UserNotificationPreference.user_id == user_id,
                models.UserNotificationPreference.notification_type == notification_type,
            )
        ).first()
        if existing is None:
            existing = models.UserNotificationPreference(
                user_id=user_id,
                notification_type=notification_type,
                email_enabled=True,
                in_app_enabled=True,
            )
            self.db.add(existing)
        if email_enabled is not None:
            existing.email_enabled = email_enabled
        if in_app_enabled is not None:
            existing.in_app_enabled = in_app_enabled
        self.db.commit()
        self.db.refresh(existing)
        return existing

    def _wants(self, user_id: uuid.UUID, notification_type: str, channel: str) -> bool:
        return self.get_user_preferences(user_id)[notification_type][channel]

    # === In-App Notification Management ===

    def create_notification(
        self,
        user_id: uuid.UUID,
        notification_type: str,
        title: str,
        message: str,
        task_id: Optional[uuid.UUID] = None,
        expires_days: int = NOTIFICATION_TTL_DAYS,
        commit: bool = True,
    ) -> models.Notification:
        notification = models.Notification(
            user_id=user_id,
            task_id=task_id,
            type=notification_type,
            title=title,
            message=message,
            expires_at=datetime.now(UTC) + timedelta(days=expires_days),
        )
        self.db.add(notification)
        if commit:
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def _active_filter(self):
        return or_(models.Notification.expires_at.is_(None), models.Notification.expires_at > datetime.now(UTC))

    def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 10,
    ) -> List[models.Notification]:
        """Latest notifications for a user, newest first."""
        query = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            self._active_filter(),
        )
        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))
        return query.order_by(desc(models.Notification.created_at)).limit(limit).all()

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Mark a notification as read for a specific user.
        Returns False if the notification is missing or owned by someone else.
        """
        notification = self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id,
            )
        ).first()
        if not notification:
            return False
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            self.db.commit()
        return True

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        updated = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        ).update({'is_read': True, 'read_at': datetime.now(UTC)}, synchronize_session=False)
        self.db.commit()
        return updated

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
            self._active_filter(),
        ).count()

    def get_total_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            self._active_filter(),
        ).count()

    def cleanup_expired_notifications(self) -> int:
        """Remove notifications past their expiry. Returns the count removed."""
        expired = self.db.query(models.Notification).filter(
            models.Notification.expires_at <= datetime.now(UTC)
        )
        count = expired.count()
        expired.delete(synchronize_session=False)
        self.db.commit()
        logger.info("removed %d expired notification(s)", count)
        return count

    # === Email Notification Management ===

    def create_email_notification_log(
        self,
        user: models.User,
        notification_type: str,
        subject: str,
        notification_id: Optional[uuid.UUID] = None,
        task_id: Optional[uuid.UUID] = None,
    ) -> models.EmailNotificationLog:
        email_log = models.EmailNotificationLog(
            notification_id=notification_id,
            task_id=task_id,
            user_id=user.id,
            email_address=user.email,
            notification_type=notification_type,
            subject=subject,
            status='pending',
        )
        self.db.add(email_log)
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    def update_email_status(
        self,
        email_log: models.EmailNotificationLog,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        email_log.status = status
        if provider_message_id:
            email_log.provider_message_id = provider_message_id
        if error_message:
            email_log.error_message = error_message
        if status == 'sent':
            email_log.sent_at = datetime.now(UTC)
        self.db.commit()

    def get_email_logs(self, user_id: Optional[uuid.UUID] = None, limit: int = 50) -> List[models.EmailNotificationLog]:
        query = self.db.query(models.EmailNotificationLog)
        if user_id is not None:
            query = query.filter(models.EmailNotificationLog.user_id == user_id)
        return query.order_by(desc(models.EmailNotificationLog.created_at)).limit(limit).all()

    async def send_email_notification(
        self,
        email_log: models.EmailNotificationLog,
        template_name: str,
        template_context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Render a template, send it, and record the outcome on the email log.

        Returns:
            Dict with 'success' and either 'message_id' or 'error'
        """
        try:
            html_content, text_content = self.email_service.render_template(template_name, template_context)
            result = await self.email_service.send_email(
                to_email=email_log.email_address,
                subject=email_log.subject,
                html_content=html_content,
                text_content=text_content,
            )
        except Exception as e:
            logger.error("Email dispatch to %s failed: %s", email_log.email_address, e)
            result = {'success': False, 'error': f"Failed to send email: {e}"}

        if result.get('success'):
            self.update_email_status(email_log, 'sent', provider_message_id=result.get('message_id'))
        else:
            self.update_email_status(email_log, 'failed', error_message=result.get('error') or 'Unknown error')
        return result

    # === Task notifications ===

    def _task_email_context(self, task: models.Task, assignee: models.User, assigner: Optional[models.User]) -> Dict[str, Any]:
        return {
            'task_title': task.title,
            'task_description': task.description or '',
            'priority_label': priority_label(task.priority),
            'due_date': task.due_date.strftime('%Y-%m-%d') if task.due_date else None,
            'assigner_name': _display_name(assigner),
            'assignee_name': _display_name(assignee),
            'task_url': build_task_url(task.id),
            'company_name': os.getenv('COMPANY_NAME', 'Revium ERP'),
            'support_email': os.getenv('SUPPORT_EMAIL', ''),
            'current_year': datetime.now(UTC).year,
        }

    def send_task_assigned_emails(
        self,
        task: models.Task,
        recipients: Iterable[models.User],
        assigner: Optional[models.User] = None,
    ) -> Dict[str, int]:
        """Email every recipient; returns {'sent': n, 'failed': m}.

        An unconfigured provider fails every recipient without raising.
        """
        counts = {'sent': 0, 'failed': 0}
        subject = f"New Task Assigned: {task.title}"
        for user in recipients:
            email_log = self.create_email_notification_log(
                user, EVENT_TASK_ASSIGNED, subject, task_id=task.id
            )
            context = self._task_email_context(task, user, assigner)
            result = asyncio.run(self.send_email_notification(email_log, TEMPLATE_TASK_ASSIGNED, context))
            counts['sent' if result.get('success') else 'failed'] += 1
        logger.info("task %s assignment emails: sent=%d failed=%d", task.id, counts['sent'], counts['failed'])
        return counts

    def notify_task_assigned(
        self,
        task: models.Task,
        assignees: List[models.User],
        assigner: Optional[models.User] = None,
        send_email: bool = True,
    ) -> Optional[Dict[str, int]]:
        """
        In-app notification per assignee, then the assignment emails.

        Returns the email counts, or None when no email was attempted.
        """
        if task_notifications_enabled():
            for user in assignees:
                if self._wants(user.id, EVENT_TASK_ASSIGNED, 'in_app_enabled'):
                    self.create_notification(
                        user.id,
                        EVENT_TASK_ASSIGNED,
                        'New Task Assigned',
                        f'"{task.title}" has been assigned to you',
                        task_id=task.id,
                        commit=False,
                    )
            self.db.commit()
        if not send_email:
            return None
        if not email_notifications_enabled():
            logger.info("email notifications disabled; skipping task %s emails", task.id)
            return None
        recipients = [u for u in assignees if self._wants(u.id, EVENT_TASK_ASSIGNED, 'email_enabled')]
        return self.send_task_assigned_emails(task, recipients, assigner)

    def notify_task_status_changed(self, task: models.Task, actor_id: Optional[uuid.UUID]) -> int:
        """Tell every assignee except the actor about a status change."""
        if not task_notifications_enabled():
            return 0
        completed = task.status == 'completed'
        notification_type = EVENT_TASK_COMPLETED if completed else EVENT_TASK_UPDATED
        if completed:
            title, message = 'Task Completed', f'"{task.title}" has been completed'
        else:
            title, message = 'Task Updated', f'"{task.title}" status changed to {task.status}'
        created = 0
        for assignment in task.assignments:
            if assignment.assigned_to == actor_id:
                continue
            if not self._wants(assignment.assigned_to, notification_type, 'in_app_enabled'):
                continue
            self.create_notification(
                assignment.assigned_to, notification_type, title, message, task_id=task.id, commit=False
            )
            created += 1
        self.db.commit()
        return created

    def notify_assignment_completed(self, task: models.Task, completed_by: models.User) -> Optional[models.Notification]:
        """Tell the task creator that an assignee finished their part."""
        if not task_notifications_enabled() or task.created_by is None or task.created_by == completed_by.id:
            return None
        if not self._wants(task.created_by, EVENT_TASK_COMPLETED, 'in_app_enabled'):
            return None
        notification = self.create_notification(
            task.created_by,
            EVENT_TASK_COMPLETED,
            'Task Completed',
            f'{_display_name(completed_by)} completed "{task.title}"',
            task_id=task.id,
        )
        creator = task.creator
        if creator is not None and email_notifications_enabled() and self._wants(creator.id, EVENT_TASK_COMPLETED, 'email_enabled'):
            email_log = self.create_email_notification_log(
                creator,
                EVENT_TASK_COMPLETED,
                f"Task Completed: {task.title}",
                notification_id=notification.id,
                task_id=task.id,
            )
            context = {
                'task_title': task.title,
                'recipient_name': _display_name(creator),
                'completed_by': _display_name(completed_by),
                'task_url': build_task_url(task.id),
                'company_name': os.getenv('COMPANY_NAME', 'Revium ERP'),
                'current_year': datetime.now(UTC).year,
            }
            asyncio.run(self.send_email_notification(email_log, TEMPLATE_TASK_COMPLETED, context))
        return notification


def get_notification_service(db: Session) -> NotificationService:
    return NotificationService(db)
