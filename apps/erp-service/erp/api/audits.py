"""
Audit log API endpoints.

Reading audit logs requires the audit_logs:read permission. Entries carry
the actor's email and name; the detail view adds the changed fields.
"""
from typing import Optional, List
import csv
import io
import json
import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.db import schemas
from erp.db.repositories import audits as audit_repo
from erp.api.deps import require_permission
from erp.utils.role_permissions import RESOURCE_AUDIT_LOGS
from erp import audit

router = APIRouter(prefix="/audits", tags=["audits"])

RECENT_LIMIT = 10
EXPORT_COLUMNS = ["date", "user", "action", "table", "record_id", "changed_fields"]


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    action: Optional[str] = None,
    table_name: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 200,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_AUDIT_LOGS, "read")),
):
    return audit_repo.get_audit_logs(
        db, action=action, table_name=table_name, user_id=user_id, search=search, skip=skip, limit=limit
    )


@router.get("/recent", response_model=List[schemas.AuditLog])
def recent_audit_logs(
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_AUDIT_LOGS, "read")),
):
    return audit_repo.get_audit_logs(db, limit=RECENT_LIMIT)


@router.get("/export")
def export_audit_logs(
    action: Optional[str] = None,
    table_name: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    limit: int = 5000,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_AUDIT_LOGS, "read")),
):
    """CSV export of the filtered log, one row per entry."""
    logs = audit_repo.get_audit_logs(
        db, action=action, table_name=table_name, user_id=user_id, search=search, limit=limit
    )
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for entry in logs:
        changes = audit.changed_fields(entry.old_data, entry.new_data)
        writer.writerow([
            entry.created_at.isoformat() if entry.created_at else "",
            entry.user_email or "",
            entry.action,
            entry.table_name,
            entry.record_id or "",
            json.dumps([c["field"] for c in changes]),
        ])
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="audit-logs.csv"'},
    )


@router.get("/{audit_id}", response_model=schemas.AuditLogDetail)
def get_audit_log(
    audit_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(require_permission(RESOURCE_AUDIT_LOGS, "read")),
):
    entry = audit_repo.get_audit_log(db, audit_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Audit log not found")
    detail = schemas.AuditLogDetail.model_validate(entry)
    detail.changed_fields = [
        schemas.ChangedField(**change) for change in audit.changed_fields(entry.old_data, entry.new_data)
    ]
    return detail
