"""
Permission checks backed by the role permission matrix.

Key helpers:
- has_permission(db, role, resource, action)
- can_write_business(current_user)
- can_manage(current_user)
"""
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from erp.db.repositories import permissions as permission_repo
from erp.utils.role_permissions import (
    ROLE_ADMIN,
    ALLOWED_RESOURCES,
    ACTIONS,
    role_allows_write as _role_allows_write,
    role_allows_manage as _role_allows_manage,
)


def has_permission(db: Session, role: Optional[str], resource: str, action: str) -> bool:
    """Return whether `role` may perform `action` on a matrix resource.

    Admins always pass. Unknown resources or actions are denied.
    """
    if not role:
        return False
    if role == ROLE_ADMIN:
        return True
    if resource not in ALLOWED_RESOURCES or action not in ACTIONS:
        return False
    row = permission_repo.get_role_permission(db, role, resource)
    if row is None:
        return False
    return bool(getattr(row, f"can_{action}"))


def can_write_business(current_user: Optional[Dict[str, Any]]) -> bool:
    """Customers, products, materials, orders and reports: write roles only."""
    if not current_user:
        return False
    return _role_allows_write(current_user.get("role"))


def can_manage(current_user: Optional[Dict[str, Any]]) -> bool:
    """Admins and managers see and steer other people's work."""
    if not current_user:
        return False
    return _role_allows_manage(current_user.get("role"))


def is_admin(current_user: Optional[Dict[str, Any]]) -> bool:
    return bool(current_user and current_user.get("is_admin"))
