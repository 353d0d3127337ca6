"""
Role permission matrix repository functions.

Rows are seeded lazily from the default matrix so a fresh database always
exposes the full role x resource grid.
"""
from __future__ import annotations

from typing import Dict, Optional
from sqlalchemy.orm import Session

from erp.db import models, schemas
from erp.utils.role_permissions import ROLES, RESOURCES, iter_default_matrix


def ensure_default_permissions(db: Session) -> int:
    """Insert missing (role, resource) rows with default flags. Returns rows added."""
    existing = {(r.role, r.resource) for r in db.query(models.RolePermission.role, models.RolePermission.resource).all()}
    added = 0
    for role, resource, flags in iter_default_matrix():
        if (role, resource) in existing:
            continue
        db.add(models.RolePermission(role=role, resource=resource, **flags))
        added += 1
    if added:
        db.commit()
    return added


def list_role_permissions(db: Session):
    ensure_default_permissions(db)
    rows = db.query(models.RolePermission).all()
    role_rank = {role: i for i, role in enumerate(ROLES)}
    resource_rank = {resource: i for i, resource in enumerate(RESOURCES)}
    return sorted(
        rows,
        key=lambda r: (role_rank.get(r.role, len(ROLES)), resource_rank.get(r.resource, len(RESOURCES)), r.resource),
    )


def get_role_permission(db: Session, role: str, resource: str) -> Optional[models.RolePermission]:
    row = (
        db.query(models.RolePermission)
        .filter(models.RolePermission.role == role, models.RolePermission.resource == resource)
        .first()
    )
    if row is None and ensure_default_permissions(db):
        row = (
            db.query(models.RolePermission)
            .filter(models.RolePermission.role == role, models.RolePermission.resource == resource)
            .first()
        )
    return row


def update_role_permission(db: Session, row: models.RolePermission, update: schemas.RolePermissionUpdate):
    for key, value in update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def reset_role_permissions(db: Session) -> None:
    defaults: Dict[tuple, Dict[str, bool]] = {(role, res): flags for role, res, flags in iter_default_matrix()}
    rows = db.query(models.RolePermission).all()
    seen = set()
    for row in rows:
        key = (row.role, row.resource)
        flags = defaults.get(key)
        if flags is None:
            db.delete(row)
            continue
        seen.add(key)
        for field, value in flags.items():
            setattr(row, field, value)
    for key, flags in defaults.items():
        if key not in seen:
            db.add(models.RolePermission(role=key[0], resource=key[1], **flags))
    db.commit()
