"""System settings flags sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "maintenance_mode",
    "allow_registrations",
    "email_notifications_enabled",
    "task_notifications_enabled",
]


class FeatureFlagValues(TypedDict):
    maintenance_mode: bool
    allow_registrations: bool
    email_notifications_enabled: bool
    task_notifications_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAG_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "maintenance_mode": FeatureFlagDefinition("MAINTENANCE_MODE", False),
    "allow_registrations": FeatureFlagDefinition("ALLOW_REGISTRATIONS", True),
    "email_notifications_enabled": FeatureFlagDefinition("EMAIL_NOTIFICATIONS_ENABLED", True),
    "task_notifications_enabled": FeatureFlagDefinition("TASK_NOTIFICATIONS_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached flag state."""
    values: Dict[FeatureFlagKey, bool] = {}
    for key, definition in _FEATURE_FLAG_DEFINITIONS.items():
        values[key] = _normalize_bool(os.getenv(definition.env_var), default=definition.default)
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    return get_feature_flags()[flag]


def maintenance_mode_enabled() -> bool:
    """Reject writes while true."""
    return is_feature_enabled("maintenance_mode")


def registrations_allowed() -> bool:
    return is_feature_enabled("allow_registrations")


def email_notifications_enabled() -> bool:
    return is_feature_enabled("email_notifications_enabled")


def task_notifications_enabled() -> bool:
    return is_feature_enabled("task_notifications_enabled")


def get_system_settings() -> Dict[str, object]:
    """Flags plus branding values shown on the settings page."""
    settings: Dict[str, object] = dict(get_feature_flags())
    settings["company_name"] = os.getenv("COMPANY_NAME", "Revium ERP")
    settings["support_email"] = os.getenv("SUPPORT_EMAIL", "")
    return settings


def refresh_feature_flag_cache() -> None:
    """Invalidate cached flag values (useful for tests)."""
    get_feature_flags.cache_clear()
