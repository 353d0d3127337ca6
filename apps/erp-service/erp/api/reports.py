"""
Report endpoints: previews, PDF generation, listing, download and delete.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.db import schemas
from erp.db.repositories import reports as report_repo
from erp.api.deps import get_current_user_context, require_write_role
from erp.services import report_service
from erp.services.storage_service import StorageError, StorageObjectNotFound, get_storage_service
from erp import audit

router = APIRouter(prefix="/reports", tags=["reports"])


def _check_type(report_type: str) -> None:
    if report_type not in report_service.REPORT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid report type. Must be one of: {', '.join(report_service.REPORT_TYPES)}",
        )


def _get_or_404(db: Session, report_id: uuid.UUID):
    report = report_repo.get_report(db, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("/", response_model=List[schemas.Report])
def list_reports(
    report_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return report_repo.get_reports(db, report_type=report_type, skip=skip, limit=limit)


@router.post("/{report_type}/preview", response_model=schemas.ReportPreview)
def preview_report(
    report_type: str,
    payload: schemas.ReportRequest,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    _check_type(report_type)
    data = report_service.aggregate(db, report_type, payload.start_date, payload.end_date)
    return {
        "report_type": report_type,
        "start_date": payload.start_date,
        "end_date": payload.end_date,
        "data": data,
    }


@router.post("/{report_type}", response_model=schemas.GeneratedReport, status_code=status.HTTP_201_CREATED)
def generate_report(
    report_type: str,
    payload: schemas.ReportRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(require_write_role),
):
    user, current_user = user_context
    _check_type(report_type)
    try:
        report, data = report_service.generate_report(
            db, report_type, payload.start_date, payload.end_date, user_id=user.id
        )
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    audit.log_create(db, report, table_name="reports", actor_user_id=user.id, request=request)
    return {"report": report, "data": data}


@router.get("/{report_id}", response_model=schemas.Report)
def get_report(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return _get_or_404(db, report_id)


@router.get("/{report_id}/download")
def download_report(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    report = _get_or_404(db, report_id)
    if not report.file_path:
        raise HTTPException(status_code=404, detail="Report has no stored file")
    try:
        content = get_storage_service().download(report.file_path)
    except StorageObjectNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    filename = report.file_path.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    report = _get_or_404(db, report_id)
    if report.created_by != user.id and not current_user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Only the creator or an admin can delete a report")
    before = audit.snapshot(report)
    try:
        report_service.delete_report(db, report)
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    audit.log_delete(db, before, table_name="reports", actor_user_id=user.id, request=request)
