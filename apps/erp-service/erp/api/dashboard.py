"""
Dashboard statistics endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp.db.database import get_db
from erp.api.deps import get_current_user_context, require_admin
from erp.services import stats_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_dashboard_stats(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return stats_service.dashboard_stats(db)


@router.get("/admin-stats")
def get_admin_stats(
    db: Session = Depends(get_db),
    user_context = Depends(require_admin),
):
    return stats_service.admin_stats(db)
