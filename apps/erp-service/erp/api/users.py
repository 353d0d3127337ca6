"""
Users API endpoints.

Self-service profile updates plus admin role and department assignment.
"""
from typing import List
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_admin
from erp.api.permissions import has_permission
from erp.db import schemas
from erp.db.repositories import users as user_repo
from erp.utils.role_permissions import ROLE_ADMIN, RESOURCE_USERS, validate_role
from erp import audit

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=List[schemas.User])
def list_users(
    skip: int = 0,
    limit: int = 500,
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    return user_repo.list_users(db, skip=skip, limit=limit)


@router.get("/me", response_model=schemas.User)
def get_me(user_context = Depends(get_current_user_context)):
    user, _ctx = user_context
    return user


@router.put("/me", response_model=schemas.User)
def update_me(
    payload: schemas.UserProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    before = audit.snapshot(user)
    user = user_repo.update_profile(db, user, payload)
    audit.log_update(db, user, before, table_name="users", actor_user_id=user.id, request=request)
    return user


@router.get("/{user_id}", response_model=schemas.User)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _user, current_user = user_context
    if user_id != current_user["id"] and not has_permission(db, current_user.get("role"), RESOURCE_USERS, "read"):
        raise HTTPException(status_code=403, detail="Forbidden")
    target = user_repo.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    return target


@router.put("/{user_id}/role", response_model=schemas.User)
def set_user_role(
    user_id: uuid.UUID,
    payload: schemas.UserRoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    _user, current_user = user_context
    role = payload.role.value
    try:
        validate_role(role)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    target = user_repo.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    previous = target.role
    if (
        user_id == current_user["id"]
        and previous == ROLE_ADMIN
        and role != ROLE_ADMIN
        and user_repo.count_users_with_role(db, ROLE_ADMIN) <= 1
    ):
        raise HTTPException(status_code=400, detail="Cannot remove the last admin")
    user_repo.set_user_role(db, user_id, role)
    audit.log(
        db,
        action=audit.AuditAction.UPDATE,
        table_name="user_roles",
        record_id=user_id,
        old_data={"user_id": str(user_id), "role": previous},
        new_data={"user_id": str(user_id), "role": role},
        actor_user_id=current_user["id"],
        request=request,
    )
    return user_repo.get_user(db, user_id)


@router.put("/{user_id}/department", response_model=schemas.User)
def set_user_department(
    user_id: uuid.UUID,
    payload: schemas.UserDepartmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    _user, current_user = user_context
    target = user_repo.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.department_id is not None and user_repo.get_department(db, payload.department_id) is None:
        raise HTTPException(status_code=404, detail="Department not found")
    before = audit.snapshot(target)
    target = user_repo.set_user_department(db, target, payload.department_id)
    audit.log_update(db, target, before, table_name="users", actor_user_id=current_user["id"], request=request)
    return target
