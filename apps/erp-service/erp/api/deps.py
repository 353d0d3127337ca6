"""
API dependency helpers.

Provides the dependency-resolved user context and the role guards used by
the routers.
"""
import logging
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.auth import (
    DevModeMisconfigured,
    RegistrationClosedError,
    get_or_create_user,
    resolve_request_identity,
)
from erp.api.permissions import has_permission, can_write_business, can_manage
from erp.utils.role_permissions import ROLE_ADMIN

logger = logging.getLogger(__name__)

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[Any, Dict[str, Any]]:
    try:
        name, email = resolve_request_identity(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
    except DevModeMisconfigured as exc:
        logger.error("DEV_MODE misconfiguration detected: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="DEV_MODE misconfigured")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        user = get_or_create_user(db, email=email, display_name=name)
    except RegistrationClosedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))

    role = user.role
    current_user = {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": role,
        "is_admin": role == ROLE_ADMIN,
    }
    return user, current_user


def require_admin(ctx=Depends(get_current_user_context)):
    _user, current_user = ctx
    if not current_user.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return ctx


def require_write_role(ctx=Depends(get_current_user_context)):
    """Viewers are read-only on business records."""
    _user, current_user = ctx
    if not can_write_business(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Write access required")
    return ctx


def require_manager(ctx=Depends(get_current_user_context)):
    _user, current_user = ctx
    if not can_manage(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager or admin role required")
    return ctx


def require_permission(resource: str, action: str):
    """Dependency factory gating a route on the role permission matrix."""

    def _dependency(
        ctx=Depends(get_current_user_context),
        db: Session = Depends(get_db),
    ):
        _user, current_user = ctx
        if not has_permission(db, current_user.get("role"), resource, action):
            logger.debug("denied %s:%s for %s", resource, action, current_user.get("email"))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {resource}:{action}",
            )
        return ctx

    return _dependency
