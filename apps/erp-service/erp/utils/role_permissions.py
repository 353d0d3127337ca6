"""
Role-based permission defaults for the ERP role matrix.

The matrix is a table of CRUD flags per (role, resource). The defaults below
seed the `role_permissions` table; admins may toggle individual flags at
runtime, after which the persisted rows are authoritative.
"""

from typing import Dict, List, Set, FrozenSet, Tuple
from enum import Enum


# Central role constants to ensure consistency across the codebase
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_OPERATOR = "operator"
ROLE_VIEWER = "viewer"

# Display order matters: the matrix is listed role-major in this order.
ROLES: Tuple[str, ...] = (ROLE_ADMIN, ROLE_MANAGER, ROLE_OPERATOR, ROLE_VIEWER)

RESOURCE_TASKS = "tasks"
RESOURCE_USERS = "users"
RESOURCE_DEPARTMENTS = "departments"
RESOURCE_PRODUCTION_ORDERS = "production_orders"
RESOURCE_PRODUCTION_PROCESSES = "production_processes"
RESOURCE_AUDIT_LOGS = "audit_logs"
RESOURCE_ROLE_PERMISSIONS = "role_permissions"

RESOURCES: Tuple[str, ...] = (
    RESOURCE_TASKS,
    RESOURCE_USERS,
    RESOURCE_DEPARTMENTS,
    RESOURCE_PRODUCTION_ORDERS,
    RESOURCE_PRODUCTION_PROCESSES,
    RESOURCE_AUDIT_LOGS,
    RESOURCE_ROLE_PERMISSIONS,
)

ACTIONS: Tuple[str, ...] = ("create", "read", "update", "delete")
PERMISSION_FIELDS: Tuple[str, ...] = tuple(f"can_{a}" for a in ACTIONS)


def _flags(spec: str) -> Dict[str, bool]:
    """Expand a 'CRUD'-style mask ('-' for denied) into permission flags."""
    spec = spec.replace(" ", "")
    return {field: spec[i] != "-" for i, field in enumerate(PERMISSION_FIELDS)}


_FULL = "CRUD"
_READ = "-R--"
_READ_UPDATE = "-RU-"
_NONE = "----"

DEFAULT_ROLE_PERMISSIONS: Dict[str, Dict[str, Dict[str, bool]]] = {
    ROLE_ADMIN: {
        RESOURCE_TASKS: _flags(_FULL),
        RESOURCE_USERS: _flags(_FULL),
        RESOURCE_DEPARTMENTS: _flags(_FULL),
        RESOURCE_PRODUCTION_ORDERS: _flags(_FULL),
        RESOURCE_PRODUCTION_PROCESSES: _flags(_FULL),
        RESOURCE_AUDIT_LOGS: _flags(_READ),
        RESOURCE_ROLE_PERMISSIONS: _flags(_FULL),
    },
    ROLE_MANAGER: {
        RESOURCE_TASKS: _flags(_FULL),
        RESOURCE_USERS: _flags(_READ),
        RESOURCE_DEPARTMENTS: _flags(_READ_UPDATE),
        RESOURCE_PRODUCTION_ORDERS: _flags(_FULL),
        RESOURCE_PRODUCTION_PROCESSES: _flags(_FULL),
        RESOURCE_AUDIT_LOGS: _flags(_READ),
        RESOURCE_ROLE_PERMISSIONS: _flags(_READ),
    },
    ROLE_OPERATOR: {
        RESOURCE_TASKS: _flags(_READ_UPDATE),
        RESOURCE_USERS: _flags(_NONE),
        RESOURCE_DEPARTMENTS: _flags(_READ),
        RESOURCE_PRODUCTION_ORDERS: _flags(_READ_UPDATE),
        RESOURCE_PRODUCTION_PROCESSES: _flags(_READ_UPDATE),
        RESOURCE_AUDIT_LOGS: _flags(_NONE),
        RESOURCE_ROLE_PERMISSIONS: _flags(_NONE),
    },
    ROLE_VIEWER: {
        RESOURCE_TASKS: _flags(_READ),
        RESOURCE_USERS: _flags(_NONE),
        RESOURCE_DEPARTMENTS: _flags(_READ),
        RESOURCE_PRODUCTION_ORDERS: _flags(_READ),
        RESOURCE_PRODUCTION_PROCESSES: _flags(_READ),
        RESOURCE_AUDIT_LOGS: _flags(_NONE),
        RESOURCE_ROLE_PERMISSIONS: _flags(_NONE),
    },
}

ALLOWED_ROLES = set(ROLES)
ALLOWED_RESOURCES = set(RESOURCES)

# Derived role groups
WRITE_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_OPERATOR})
MANAGE_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_MANAGER})


class RoleEnum(str, Enum):
    """Enum for user roles used in schemas and validation."""
    admin = ROLE_ADMIN
    manager = ROLE_MANAGER
    operator = ROLE_OPERATOR
    viewer = ROLE_VIEWER


def get_default_permissions(role: str, resource: str) -> Dict[str, bool]:
    """
    Get the default CRUD flags for a (role, resource) pair.

    Raises:
        ValueError: If role or resource is not recognized
    """
    if role not in DEFAULT_ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {list(ROLES)}")
    if resource not in ALLOWED_RESOURCES:
        raise ValueError(f"Unknown resource: {resource}. Allowed resources: {list(RESOURCES)}")
    return DEFAULT_ROLE_PERMISSIONS[role][resource].copy()


def iter_default_matrix() -> List[Tuple[str, str, Dict[str, bool]]]:
    """Return every (role, resource, flags) triple in display order."""
    return [(role, resource, get_default_permissions(role, resource)) for role in ROLES for resource in RESOURCES]


def get_allowed_roles() -> Set[str]:
    """Get the set of all allowed roles."""
    return ALLOWED_ROLES.copy()


def validate_role(role: str) -> None:
    """
    Validate that a role is allowed.

    Raises:
        ValueError: If role is not allowed
    """
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}")


def validate_resource(resource: str) -> None:
    if resource not in ALLOWED_RESOURCES:
        raise ValueError(f"Invalid resource '{resource}'. Allowed resources: {sorted(ALLOWED_RESOURCES)}")


def validate_action(action: str) -> None:
    if action not in ACTIONS:
        raise ValueError(f"Invalid action '{action}'. Allowed actions: {list(ACTIONS)}")


def role_allows_write(role: str) -> bool:
    """Return True if the role may modify business records (customers, orders, stock)."""
    return role in WRITE_ROLES


def role_allows_manage(role: str) -> bool:
    """Return True if the role may see and steer other people's work."""
    return role in MANAGE_ROLES
