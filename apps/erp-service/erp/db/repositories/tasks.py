"""
Task and task assignment repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, selectinload, joinedload
from sqlalchemy import func, or_, case

from erp.db import models

SORT_CREATED_AT = "created_at"
SORT_PRIORITY = "priority"
SORT_DUE_DATE = "due_date"
SORT_OPTIONS = (SORT_CREATED_AT, SORT_PRIORITY, SORT_DUE_DATE)

SCOPE_ASSIGNED = "assigned"
SCOPE_CREATED = "created"
SCOPE_ALL = "all"
SCOPE_OPTIONS = (SCOPE_ASSIGNED, SCOPE_CREATED, SCOPE_ALL)


def get_task(db: Session, task_id: uuid.UUID):
    return (
        db.query(models.Task)
        .options(selectinload(models.Task.assignments).joinedload(models.TaskAssignment.assignee))
        .filter(models.Task.id == task_id)
        .first()
    )


def get_tasks(
    db: Session,
    *,
    user_id: uuid.UUID,
    scope: str = SCOPE_ASSIGNED,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = SORT_CREATED_AT,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.Task)
    if scope == SCOPE_ASSIGNED:
        assigned = db.query(models.TaskAssignment.task_id).filter(models.TaskAssignment.assigned_to == user_id)
        query = query.filter(models.Task.id.in_(assigned))
    elif scope == SCOPE_CREATED:
        query = query.filter(models.Task.created_by == user_id)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.Task.title).like(term), func.lower(models.Task.description).like(term))
        )
    if status:
        query = query.filter(models.Task.status == status)

    if sort_by == SORT_PRIORITY:
        query = query.order_by(models.Task.priority.desc(), models.Task.created_at.desc())
    elif sort_by == SORT_DUE_DATE:
        # nulls last, portable across SQLite and PostgreSQL
        query = query.order_by(
            case((models.Task.due_date.is_(None), 1), else_=0),
            models.Task.due_date.asc(),
        )
    else:
        query = query.order_by(models.Task.created_at.desc())
    return query.offset(skip).limit(limit).all()


def count_tasks_by_status(db: Session):
    rows = db.query(models.Task.status, func.count(models.Task.id)).group_by(models.Task.status).all()
    return {status: count for status, count in rows}


def get_assignment(db: Session, task_id: uuid.UUID, user_id: uuid.UUID):
    return (
        db.query(models.TaskAssignment)
        .options(joinedload(models.TaskAssignment.assignee))
        .filter(models.TaskAssignment.task_id == task_id, models.TaskAssignment.assigned_to == user_id)
        .first()
    )


def is_assignee(db: Session, task_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return (
        db.query(models.TaskAssignment.id)
        .filter(models.TaskAssignment.task_id == task_id, models.TaskAssignment.assigned_to == user_id)
        .first()
        is not None
    )


def delete_task(db: Session, db_task: models.Task) -> None:
    db.delete(db_task)
    db.commit()
