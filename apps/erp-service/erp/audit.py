"""
Audit logging helpers and enums.

Routers call :func:`log` after each successful mutation with JSON snapshots
of the row before and after the change. Writing the entry never fails the
caller's request: errors are logged and the session is rolled back.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erp.db import schemas
from erp.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def _json_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(obj: Any) -> Optional[Dict[str, Any]]:
    """Return a JSON-safe dict of an ORM row's column values."""
    if obj is None:
        return None
    mapper = sa_inspect(obj).mapper
    return {attr.key: _json_value(getattr(obj, attr.key)) for attr in mapper.column_attrs}


def changed_fields(
    old_data: Optional[Dict[str, Any]],
    new_data: Optional[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """List keys whose values differ between two snapshots.

    The key set is the union of both snapshots, so created and deleted rows
    report every field.
    """
    old_data = old_data or {}
    new_data = new_data or {}
    changes = []
    for key in sorted(set(old_data) | set(new_data)):
        before = old_data.get(key)
        after = new_data.get(key)
        if before != after:
            changes.append({"field": key, "old_value": before, "new_value": after})
    return changes


def request_context(request: Any) -> Tuple[Optional[str], Optional[str]]:
    """Extract (client ip, user agent) from a Starlette request."""
    if request is None:
        return None, None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


def log(
    db: Session,
    *,
    action: AuditAction | str,
    table_name: str,
    record_id: Any = None,
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    request: Any = None,
):
    """Central audit logging helper.

    Returns the persisted row, or None when the write failed.
    """
    # Persist pure string values, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action).upper()
    ip_address, user_agent = request_context(request)
    audit_log = schemas.AuditLogCreate(
        action=action_value,
        table_name=table_name,
        record_id=str(record_id) if record_id is not None else None,
        old_data=old_data,
        new_data=new_data,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        return audit_repo.create_audit_log(db, audit_log=audit_log, user_id=actor_user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("audit write failed for %s %s/%s: %s", action_value, table_name, record_id, exc)
        return None


def log_create(db: Session, obj: Any, *, table_name: str, actor_user_id=None, request=None):
    return log(
        db,
        action=AuditAction.CREATE,
        table_name=table_name,
        record_id=obj.id,
        new_data=snapshot(obj),
        actor_user_id=actor_user_id,
        request=request,
    )


def log_update(db: Session, obj: Any, old_data: Optional[Dict[str, Any]], *, table_name: str, actor_user_id=None, request=None):
    return log(
        db,
        action=AuditAction.UPDATE,
        table_name=table_name,
        record_id=obj.id,
        old_data=old_data,
        new_data=snapshot(obj),
        actor_user_id=actor_user_id,
        request=request,
    )


def log_delete(db: Session, old_data: Dict[str, Any], *, table_name: str, actor_user_id=None, request=None):
    return log(
        db,
        action=AuditAction.DELETE,
        table_name=table_name,
        record_id=old_data.get("id"),
        old_data=old_data,
        actor_user_id=actor_user_id,
        request=request,
    )


__all__ = [
    "AuditAction",
    "snapshot",
    "changed_fields",
    "request_context",
    "log",
    "log_create",
    "log_update",
    "log_delete",
]
