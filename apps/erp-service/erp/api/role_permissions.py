"""
Role permission matrix endpoints.

Any authenticated user may read the matrix; only admins change it.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_admin
from erp.db import schemas
from erp.db.repositories import permissions as permission_repo
from erp.utils.role_permissions import validate_role, validate_resource
from erp import audit

router = APIRouter(prefix="/role-permissions", tags=["role-permissions"])


@router.get("/", response_model=List[schemas.RolePermission])
def list_role_permissions(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return permission_repo.list_role_permissions(db)


@router.post("/reset", response_model=List[schemas.RolePermission])
def reset_role_permissions(
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    _user, current_user = user_context
    permission_repo.reset_role_permissions(db)
    audit.log(
        db,
        action=audit.AuditAction.UPDATE,
        table_name="role_permissions",
        new_data={"reset": True},
        actor_user_id=current_user["id"],
        request=request,
    )
    return permission_repo.list_role_permissions(db)


@router.put("/{role}/{resource}", response_model=schemas.RolePermission)
def update_role_permission(
    role: str,
    resource: str,
    payload: schemas.RolePermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    _user, current_user = user_context
    try:
        validate_role(role)
        validate_resource(resource)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    row = permission_repo.get_role_permission(db, role, resource)
    if row is None:
        raise HTTPException(status_code=404, detail="Permission row not found")
    before = audit.snapshot(row)
    row = permission_repo.update_role_permission(db, row, payload)
    audit.log_update(db, row, before, table_name="role_permissions", actor_user_id=current_user["id"], request=request)
    return row
