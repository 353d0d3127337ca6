"""
Task workflows: creation with assignments, visibility rules and the
per-assignee accept/decline/complete actions.

Notification side effects go through NotificationService. Functions raise
LookupError for missing rows, PermissionError for forbidden actions and
ValueError for invalid input; the router maps them to HTTP errors.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from erp.db import models, schemas
from erp.db.models.base import now_utc
from erp.db.repositories import tasks as task_repo
from erp.db.repositories import users as user_repo
from erp.utils.role_permissions import role_allows_manage, RESOURCE_TASKS
from erp.api.permissions import has_permission
from .errors import ConflictError
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

ASSIGNMENT_PENDING = "pending"
ASSIGNMENT_ACCEPTED = "accepted"
ASSIGNMENT_REJECTED = "rejected"
ASSIGNMENT_COMPLETED = "completed"


def _resolve_assignees(db: Session, user_ids: List[uuid.UUID]) -> List[models.User]:
    unique_ids = list(dict.fromkeys(user_ids))
    users = {u.id: u for u in user_repo.get_users_by_ids(db, unique_ids)}
    missing = [str(uid) for uid in unique_ids if uid not in users]
    if missing:
        raise ValueError(f"Unknown assignee(s): {', '.join(missing)}")
    return [users[uid] for uid in unique_ids]


def create_task(
    db: Session,
    payload: schemas.TaskCreate,
    creator: models.User,
    notifier: Optional[NotificationService] = None,
) -> Tuple[models.Task, Optional[Dict[str, int]]]:
    """Insert the task and its assignments, then notify the assignees."""
    assignees = _resolve_assignees(db, payload.assignee_ids)
    task = models.Task(
        **payload.model_dump(exclude={"assignee_ids", "send_email"}),
        status=STATUS_PENDING,
        created_by=creator.id,
    )
    db.add(task)
    db.flush()
    for user in assignees:
        db.add(models.TaskAssignment(task_id=task.id, assigned_to=user.id, assigned_by=creator.id))
    db.commit()
    db.refresh(task)
    logger.info("task %s created by %s with %d assignee(s)", task.id, creator.email, len(assignees))

    email_result = None
    if assignees:
        notifier = notifier or NotificationService(db)
        email_result = notifier.notify_task_assigned(task, assignees, assigner=creator, send_email=payload.send_email)
    return task_repo.get_task(db, task.id), email_result


def can_view_task(db: Session, task: models.Task, current_user: Dict[str, Any]) -> bool:
    """Creator, assignees, and managers/admins holding tasks:read."""
    user_id = current_user.get("id")
    if task.created_by == user_id:
        return True
    if any(a.assigned_to == user_id for a in task.assignments):
        return True
    role = current_user.get("role")
    return role_allows_manage(role) and has_permission(db, role, RESOURCE_TASKS, "read")


def can_modify_task(db: Session, task: models.Task, current_user: Dict[str, Any], action: str) -> bool:
    """The creator, or anyone whose role grants tasks:<action>."""
    if task.created_by == current_user.get("id"):
        return True
    return has_permission(db, current_user.get("role"), RESOURCE_TASKS, action)


def can_manage_assignees(task: models.Task, current_user: Dict[str, Any]) -> bool:
    return task.created_by == current_user.get("id") or role_allows_manage(current_user.get("role"))


def update_task(
    db: Session,
    task: models.Task,
    payload: schemas.TaskUpdate,
    actor_id: Optional[uuid.UUID],
    notifier: Optional[NotificationService] = None,
) -> models.Task:
    data = payload.model_dump(exclude_unset=True)
    previous_status = task.status
    for key, value in data.items():
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    if task.status != previous_status:
        notifier = notifier or NotificationService(db)
        notifier.notify_task_status_changed(task, actor_id)
    return task


def add_assignee(
    db: Session,
    task: models.Task,
    user_id: uuid.UUID,
    assigned_by: models.User,
    notifier: Optional[NotificationService] = None,
) -> models.TaskAssignment:
    (user,) = _resolve_assignees(db, [user_id])
    if task_repo.get_assignment(db, task.id, user_id) is not None:
        raise ConflictError("User is already assigned to this task")
    assignment = models.TaskAssignment(task_id=task.id, assigned_to=user.id, assigned_by=assigned_by.id)
    db.add(assignment)
    db.commit()
    notifier = notifier or NotificationService(db)
    notifier.notify_task_assigned(task, [user], assigner=assigned_by, send_email=False)
    return task_repo.get_assignment(db, task.id, user_id)


def remove_assignee(db: Session, task: models.Task, user_id: uuid.UUID) -> None:
    assignment = task_repo.get_assignment(db, task.id, user_id)
    if assignment is None:
        raise LookupError("Assignment not found")
    db.delete(assignment)
    db.commit()


def _own_assignment(db: Session, task_id: uuid.UUID, user_id: uuid.UUID) -> models.TaskAssignment:
    assignment = task_repo.get_assignment(db, task_id, user_id)
    if assignment is None:
        raise LookupError("Assignment not found")
    return assignment


def accept_assignment(db: Session, task_id: uuid.UUID, user_id: uuid.UUID) -> models.TaskAssignment:
    assignment = _own_assignment(db, task_id, user_id)
    assignment.accepted_at = now_utc()
    assignment.declined_at = None
    assignment.rejection_reason = None
    assignment.status = ASSIGNMENT_ACCEPTED
    db.commit()
    db.refresh(assignment)
    return assignment


def decline_assignment(
    db: Session, task_id: uuid.UUID, user_id: uuid.UUID, reason: Optional[str] = None
) -> models.TaskAssignment:
    assignment = _own_assignment(db, task_id, user_id)
    assignment.declined_at = now_utc()
    assignment.accepted_at = None
    assignment.status = ASSIGNMENT_REJECTED
    assignment.rejection_reason = reason
    db.commit()
    db.refresh(assignment)
    return assignment


def _complete_task_if_done(db: Session, task: models.Task) -> bool:
    db.refresh(task)
    if task.assignments and all(a.status == ASSIGNMENT_COMPLETED for a in task.assignments):
        if task.status != STATUS_COMPLETED:
            task.status = STATUS_COMPLETED
            db.commit()
            logger.info("task %s completed: every assignment is done", task.id)
            return True
    return False


def complete_assignment(
    db: Session,
    task_id: uuid.UUID,
    user: models.User,
    notifier: Optional[NotificationService] = None,
) -> models.TaskAssignment:
    assignment = _own_assignment(db, task_id, user.id)
    assignment.completed_at = now_utc()
    assignment.status = ASSIGNMENT_COMPLETED
    db.commit()
    task = task_repo.get_task(db, task_id)
    notifier = notifier or NotificationService(db)
    notifier.notify_assignment_completed(task, user)
    _complete_task_if_done(db, task)
    db.refresh(assignment)
    return assignment


def update_my_assignment(
    db: Session,
    task_id: uuid.UUID,
    user: models.User,
    payload: schemas.MyAssignmentUpdate,
    notifier: Optional[NotificationService] = None,
) -> models.TaskAssignment:
    """Status and/or notes on the caller's own assignment row only."""
    data = payload.model_dump(exclude_unset=True)
    status = data.get("status")
    if status == ASSIGNMENT_COMPLETED:
        assignment = complete_assignment(db, task_id, user, notifier=notifier)
    elif status == ASSIGNMENT_ACCEPTED:
        assignment = accept_assignment(db, task_id, user.id)
    elif status == ASSIGNMENT_REJECTED:
        assignment = decline_assignment(db, task_id, user.id, data.get("rejection_reason"))
    else:
        assignment = _own_assignment(db, task_id, user.id)
        if status == ASSIGNMENT_PENDING:
            assignment.status = ASSIGNMENT_PENDING
            assignment.accepted_at = None
            assignment.declined_at = None
            assignment.completed_at = None
    if "notes" in data:
        assignment.notes = data["notes"]
    db.commit()
    db.refresh(assignment)
    return assignment
