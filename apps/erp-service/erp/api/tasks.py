"""
Task API endpoints.

Tasks are visible to their creator, their assignees, and managers/admins.
Anything else answers 404 so task ids do not leak.
"""
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context
from erp.api.permissions import can_manage, has_permission
from erp.db import schemas
from erp.db.repositories import tasks as task_repo
from erp.services import task_service
from erp.services.errors import ConflictError
from erp.utils.role_permissions import RESOURCE_TASKS
from erp import audit

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _visible_task_or_404(db: Session, task_id: uuid.UUID, current_user):
    task = task_repo.get_task(db, task_id)
    if task is None or not task_service.can_view_task(db, task, current_user):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.post("/", response_model=schemas.TaskCreateResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: schemas.TaskCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not has_permission(db, current_user.get("role"), RESOURCE_TASKS, "create"):
        raise HTTPException(status_code=403, detail="Permission denied: tasks:create")
    try:
        task, email_result = task_service.create_task(db, payload, creator=user)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_create(db, task, table_name="tasks", actor_user_id=user.id, request=request)
    return {"task": task_repo.get_task(db, task.id), "email": email_result}


@router.get("/", response_model=List[schemas.Task])
def list_tasks(
    scope: str = task_repo.SCOPE_ASSIGNED,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = task_repo.SORT_CREATED_AT,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if scope not in task_repo.SCOPE_OPTIONS:
        raise HTTPException(status_code=400, detail=f"Invalid scope '{scope}'")
    if sort_by not in task_repo.SORT_OPTIONS:
        raise HTTPException(status_code=400, detail=f"Invalid sort_by '{sort_by}'")
    if scope == task_repo.SCOPE_ALL and not can_manage(current_user):
        raise HTTPException(status_code=403, detail="Manager or admin role required")
    return task_repo.get_tasks(
        db,
        user_id=user.id,
        scope=scope,
        search=search,
        status=status,
        sort_by=sort_by,
        skip=skip,
        limit=limit,
    )


@router.get("/{task_id}", response_model=schemas.TaskDetail)
def get_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _user, current_user = user_context
    return _visible_task_or_404(db, task_id, current_user)


@router.put("/{task_id}", response_model=schemas.TaskDetail)
def update_task(
    task_id: uuid.UUID,
    payload: schemas.TaskUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    task = _visible_task_or_404(db, task_id, current_user)
    if not task_service.can_modify_task(db, task, current_user, "update"):
        raise HTTPException(status_code=403, detail="Not allowed to update this task")
    before = audit.snapshot(task)
    task = task_service.update_task(db, task, payload, actor_id=user.id)
    audit.log_update(db, task, before, table_name="tasks", actor_user_id=user.id, request=request)
    return task_repo.get_task(db, task_id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    task = _visible_task_or_404(db, task_id, current_user)
    if not task_service.can_modify_task(db, task, current_user, "delete"):
        raise HTTPException(status_code=403, detail="Not allowed to delete this task")
    before = audit.snapshot(task)
    task_repo.delete_task(db, task)
    audit.log_delete(db, before, table_name="tasks", actor_user_id=user.id, request=request)


# Assignees

@router.post(
    "/{task_id}/assignees",
    response_model=schemas.TaskAssignment,
    status_code=status.HTTP_201_CREATED,
)
def add_assignee(
    task_id: uuid.UUID,
    payload: schemas.AssigneeAdd,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    task = _visible_task_or_404(db, task_id, current_user)
    if not task_service.can_manage_assignees(task, current_user):
        raise HTTPException(status_code=403, detail="Only the creator or a manager can change assignees")
    try:
        assignment = task_service.add_assignee(db, task, payload.user_id, assigned_by=user)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    audit.log_create(db, assignment, table_name="task_assignments", actor_user_id=user.id, request=request)
    return assignment


@router.delete("/{task_id}/assignees/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_assignee(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    task = _visible_task_or_404(db, task_id, current_user)
    if not task_service.can_manage_assignees(task, current_user):
        raise HTTPException(status_code=403, detail="Only the creator or a manager can change assignees")
    assignment = task_repo.get_assignment(db, task_id, user_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    before = audit.snapshot(assignment)
    task_service.remove_assignee(db, task, user_id)
    audit.log_delete(db, before, table_name="task_assignments", actor_user_id=user.id, request=request)


# Actions on the caller's own assignment

def _assignment_action(db: Session, request: Request, user, task_id: uuid.UUID, action):
    assignment = task_repo.get_assignment(db, task_id, user.id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    before = audit.snapshot(assignment)
    try:
        assignment = action()
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    audit.log_update(db, assignment, before, table_name="task_assignments", actor_user_id=user.id, request=request)
    return assignment


@router.post("/{task_id}/accept", response_model=schemas.TaskAssignment)
def accept_assignment(
    task_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    return _assignment_action(
        db, request, user, task_id, lambda: task_service.accept_assignment(db, task_id, user.id)
    )


@router.post("/{task_id}/decline", response_model=schemas.TaskAssignment)
def decline_assignment(
    task_id: uuid.UUID,
    request: Request,
    payload: Optional[schemas.AssignmentDecline] = None,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    reason = payload.reason if payload else None
    return _assignment_action(
        db, request, user, task_id, lambda: task_service.decline_assignment(db, task_id, user.id, reason)
    )


@router.post("/{task_id}/complete", response_model=schemas.TaskAssignment)
def complete_assignment(
    task_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    return _assignment_action(
        db, request, user, task_id, lambda: task_service.complete_assignment(db, task_id, user)
    )


@router.put("/{task_id}/my-assignment", response_model=schemas.TaskAssignment)
def update_my_assignment(
    task_id: uuid.UUID,
    payload: schemas.MyAssignmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    return _assignment_action(
        db, request, user, task_id, lambda: task_service.update_my_assignment(db, task_id, user, payload)
    )
