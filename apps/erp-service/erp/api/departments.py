"""
Department API endpoints, gated by the departments permission row.
"""
from typing import List
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import require_permission
from erp.db import schemas
from erp.db.repositories import users as user_repo
from erp.services import stats_service
from erp.utils.role_permissions import RESOURCE_DEPARTMENTS
from erp import audit

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("/", response_model=List[schemas.Department])
def list_departments(
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "read")),
):
    return user_repo.list_departments(db)


# Declared before /{department_id} so "stats" is not parsed as an id
@router.get("/stats")
def get_department_stats(
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "read")),
):
    return stats_service.department_stats(db)


@router.post("/", response_model=schemas.Department, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: schemas.DepartmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "create")),
):
    _user, current_user = user_context
    if user_repo.get_department_by_name(db, payload.name):
        raise HTTPException(status_code=409, detail="Department name already exists")
    if payload.manager_id is not None and user_repo.get_user(db, payload.manager_id) is None:
        raise HTTPException(status_code=400, detail="Manager not found")
    department = user_repo.create_department(db, payload)
    audit.log_create(db, department, table_name="departments", actor_user_id=current_user["id"], request=request)
    return department


@router.get("/{department_id}", response_model=schemas.Department)
def get_department(
    department_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "read")),
):
    department = user_repo.get_department(db, department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.put("/{department_id}", response_model=schemas.Department)
def update_department(
    department_id: uuid.UUID,
    payload: schemas.DepartmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "update")),
):
    _user, current_user = user_context
    department = user_repo.get_department(db, department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    if payload.manager_id is not None and user_repo.get_user(db, payload.manager_id) is None:
        raise HTTPException(status_code=400, detail="Manager not found")
    before = audit.snapshot(department)
    try:
        department = user_repo.update_department(db, department, payload)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Department name already exists")
    audit.log_update(db, department, before, table_name="departments", actor_user_id=current_user["id"], request=request)
    return department


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(
    department_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_DEPARTMENTS, "delete")),
):
    _user, current_user = user_context
    department = user_repo.get_department(db, department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    before = audit.snapshot(department)
    user_repo.delete_department(db, department)
    audit.log_delete(db, before, table_name="departments", actor_user_id=current_user["id"], request=request)
