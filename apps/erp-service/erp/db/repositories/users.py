"""
User, role and department repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from erp.db import models, schemas


def get_user(db: Session, user_id: uuid.UUID):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def get_users_by_ids(db: Session, user_ids):
    ids = list(user_ids)
    if not ids:
        return []
    return db.query(models.User).filter(models.User.id.in_(ids)).all()


def list_users(db: Session, skip: int = 0, limit: int = 500):
    return (
        db.query(models.User)
        .options(joinedload(models.User.role_row), joinedload(models.User.department))
        .order_by(models.User.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def count_users(db: Session) -> int:
    return db.query(func.count(models.User.id)).scalar() or 0


def update_profile(db: Session, user: models.User, payload: schemas.UserProfileUpdate):
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def get_user_role(db: Session, user_id: uuid.UUID) -> Optional[str]:
    row = db.query(models.UserRole).filter(models.UserRole.user_id == user_id).first()
    return row.role if row else None


def set_user_role(db: Session, user_id: uuid.UUID, role: str, *, commit: bool = True):
    """Replace the user's role: drop any existing row, then insert the new one."""
    db.query(models.UserRole).filter(models.UserRole.user_id == user_id).delete(synchronize_session=False)
    db.flush()
    row = models.UserRole(user_id=user_id, role=role)
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    else:
        db.flush()
    # The relationship cache on a loaded User would still point at the old row
    user = db.get(models.User, user_id)
    if user is not None:
        db.refresh(user)
    return row


def count_users_with_role(db: Session, role: str) -> int:
    return db.query(func.count(models.UserRole.id)).filter(models.UserRole.role == role).scalar() or 0


def set_user_department(db: Session, user: models.User, department_id: Optional[uuid.UUID]):
    user.department_id = department_id
    db.commit()
    db.refresh(user)
    return user


# Departments

def create_department(db: Session, department: schemas.DepartmentCreate):
    db_department = models.Department(**department.model_dump())
    db.add(db_department)
    db.commit()
    db.refresh(db_department)
    return db_department


def get_department(db: Session, department_id: uuid.UUID):
    return db.query(models.Department).filter(models.Department.id == department_id).first()


def get_department_by_name(db: Session, name: str):
    return db.query(models.Department).filter(func.lower(models.Department.name) == name.strip().lower()).first()


def list_departments(db: Session):
    return db.query(models.Department).order_by(models.Department.name.asc()).all()


def count_departments(db: Session) -> int:
    return db.query(func.count(models.Department.id)).scalar() or 0


def update_department(db: Session, db_department: models.Department, department: schemas.DepartmentUpdate):
    for key, value in department.model_dump(exclude_unset=True).items():
        setattr(db_department, key, value)
    db.commit()
    db.refresh(db_department)
    return db_department


def delete_department(db: Session, db_department: models.Department) -> None:
    """Delete a department, detaching its members and processes first."""
    db.query(models.User).filter(models.User.department_id == db_department.id).update(
        {models.User.department_id: None}, synchronize_session=False
    )
    db.query(models.ProductionProcess).filter(
        models.ProductionProcess.assigned_department == db_department.id
    ).update({models.ProductionProcess.assigned_department: None}, synchronize_session=False)
    db.delete(db_department)
    db.commit()
