"""
Authentication helpers and identity resolution.

Parses proxy headers, normalizes emails and upserts users. Roles are assigned
on first sight from ADMIN_EMAILS / DEFAULT_USER_ROLE.

DEV_MODE=true replaces the proxy identity with a fixed local user. It is only
honoured when APP_BASE_URL names a local host (or one listed in
DEV_MODE_ALLOWED_HOSTS), or when no base URL is set and ALLOW_DEV_MODE=true.
"""
import logging
import os
from typing import Optional, Tuple
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from erp.db import models
from erp.db.repositories import users as user_repo
from erp.utils.feature_flags import registrations_allowed
from erp.utils.role_permissions import ROLE_ADMIN, ROLE_VIEWER, ALLOWED_ROLES

logger = logging.getLogger(__name__)


class RegistrationClosedError(PermissionError):
    """A new identity arrived while registrations are disabled."""


class DevModeMisconfigured(RuntimeError):
    """DEV_MODE was switched on for a deployment that is not local."""


DEV_USER_NAME = "Development User"
DEV_USER_EMAIL = "dev@localhost"

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def _normalize_list_env(var_name: str) -> set:
    raw = os.getenv(var_name, "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _admin_emails() -> set:
    return _normalize_list_env("ADMIN_EMAILS")


def default_user_role() -> str:
    role = os.getenv("DEFAULT_USER_ROLE", ROLE_VIEWER).strip().lower()
    if role not in ALLOWED_ROLES:
        logger.warning("DEFAULT_USER_ROLE=%s is not a known role; using %s", role, ROLE_VIEWER)
        return ROLE_VIEWER
    return role


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def dev_mode_requested() -> bool:
    return os.getenv("DEV_MODE", "false").strip().lower() == "true"


def dev_identity() -> Optional[Tuple[str, str]]:
    """(name, email) of the local development user, or None outside DEV_MODE.

    Raises DevModeMisconfigured when DEV_MODE is on for a non-local deployment.
    """
    if not dev_mode_requested():
        return None
    base_url = os.getenv("APP_BASE_URL", "").strip()
    if base_url:
        host = (urlparse(base_url if "://" in base_url else f"http://{base_url}").hostname or "").lower()
        allowed = _LOCAL_HOSTS | _normalize_list_env("DEV_MODE_ALLOWED_HOSTS")
        if host not in allowed:
            raise DevModeMisconfigured(f"DEV_MODE is not permitted for APP_BASE_URL host '{host}'")
    elif os.getenv("ALLOW_DEV_MODE", "false").strip().lower() != "true":
        raise DevModeMisconfigured("DEV_MODE needs a localhost APP_BASE_URL or ALLOW_DEV_MODE=true")
    return DEV_USER_NAME, DEV_USER_EMAIL


def resolve_request_identity(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """The development user under DEV_MODE, otherwise the proxy headers."""
    identity = dev_identity()
    if identity is not None:
        return identity
    return resolve_identity_from_headers(
        x_auth_request_user=x_auth_request_user,
        x_auth_request_email=x_auth_request_email,
        x_forwarded_user=x_forwarded_user,
        x_forwarded_email=x_forwarded_email,
    )


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    user = user_repo.get_user_by_email(db, email)
    admins = _admin_emails()
    if user is None:
        if not registrations_allowed():
            raise RegistrationClosedError("Registrations are closed")
        user = models.User(email=email, full_name=display_name or email.split("@")[0])
        db.add(user)
        db.flush()
        role = ROLE_ADMIN if email in admins else default_user_role()
        user_repo.set_user_role(db, user.id, role)
        logger.info("registered user %s with role %s", email, role)
        return user

    # Existing users might predate a new ADMIN_EMAILS value
    if email in admins and user.role != ROLE_ADMIN:
        user_repo.set_user_role(db, user.id, ROLE_ADMIN)
        logger.info("promoted %s to admin from ADMIN_EMAILS", email)
    elif user.role is None:
        user_repo.set_user_role(db, user.id, default_user_role())
    return user
