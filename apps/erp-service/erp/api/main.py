"""
FastAPI app assembly: middleware and router wiring.
Includes the identity, health and system settings endpoints that span
several resource modules.
"""
import logging
import os
from typing import Optional

from fastapi import FastAPI, Header, Depends, HTTPException, status, APIRouter
from starlette.requests import Request
from starlette.responses import JSONResponse
from sqlalchemy.orm import Session
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)


from erp.db.database import get_db
from erp.db.repositories import permissions as permission_repo
from erp.api.auth import (
    DevModeMisconfigured,
    RegistrationClosedError,
    dev_mode_requested,
    get_or_create_user,
    resolve_request_identity,
)
from erp.api.deps import require_admin
from erp.api.users import router as users_router
from erp.api.departments import router as departments_router
from erp.api.role_permissions import router as role_permissions_router
from erp.api.customers import router as customers_router
from erp.api.products import router as products_router
from erp.api.raw_materials import router as raw_materials_router
from erp.api.orders import router as orders_router
from erp.api.production import router as production_router
from erp.api.tasks import router as tasks_router
from erp.api.notifications import router as notifications_router
from erp.api.audits import router as audits_router
from erp.api.reports import router as reports_router
from erp.api.dashboard import router as dashboard_router
from erp.utils.role_permissions import ROLE_ADMIN
from erp.utils.feature_flags import get_feature_flags, get_system_settings, maintenance_mode_enabled

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Revium ERP Service",
    description="API for customers, orders, inventory, production, tasks and reports.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
]
extra_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins + extra_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

WRITE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in WRITE_METHODS:
        # In dev mode, allow; authentication is handled by route dependencies
        if not dev_mode_requested():
            h = request.headers
            user_present = (
                h.get("x-auth-request-user")
                or h.get("x-auth-request-email")
                or h.get("x-forwarded-user")
                or h.get("x-forwarded-email")
            )
            if not user_present:
                return JSONResponse(
                    {"detail": "Guest mode is read-only. Sign in to perform changes."},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                )
    return await call_next(request)


# Middleware: reject writes while maintenance mode is on (registered last, runs first)
@app.middleware("http")
async def enforce_maintenance_mode(request: Request, call_next):
    if request.method in WRITE_METHODS and maintenance_mode_enabled():
        return JSONResponse(
            {"detail": "Service is in maintenance mode"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return await call_next(request)


router = APIRouter()


@router.get("/user-info")
def get_user_info(
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """
    Return authenticated user info, role and the role's permission rows.
    - Dev mode (DEV_MODE=true): returns a stable dev user and ensures it exists.
    - Normal mode: reads headers set by oauth2-proxy and upserts the user.
    """
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
    if not name and not email:
        return JSONResponse({"authenticated": False}, status_code=status.HTTP_401_UNAUTHORIZED)
    if not email:
        return {"authenticated": True, "user": name or None, "email": None}

    try:
        user = get_or_create_user(db, email=email, display_name=name)
    except RegistrationClosedError as exc:
        return JSONResponse({"authenticated": False, "detail": str(exc)}, status_code=status.HTTP_403_FORBIDDEN)

    role = user.role
    permissions = {
        row.resource: {
            "can_create": row.can_create,
            "can_read": row.can_read,
            "can_update": row.can_update,
            "can_delete": row.can_delete,
        }
        for row in permission_repo.list_role_permissions(db)
        if row.role == role
    }
    return {
        "authenticated": True,
        "user_id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "role": role,
        "is_admin": role == ROLE_ADMIN,
        "department_id": str(user.department_id) if user.department_id else None,
        "permissions": permissions,
        "feature_flags": dict(get_feature_flags()),
    }


@router.get("/system/settings")
def get_settings(user_context = Depends(require_admin)):
    return get_system_settings()


app.include_router(router)
app.include_router(users_router)
app.include_router(departments_router)
app.include_router(role_permissions_router)
app.include_router(customers_router)
app.include_router(products_router)
app.include_router(raw_materials_router)
app.include_router(orders_router)
app.include_router(production_router)
app.include_router(tasks_router)
app.include_router(notifications_router, prefix="/notifications")
app.include_router(audits_router)
app.include_router(reports_router)
app.include_router(dashboard_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "erp-service"}
