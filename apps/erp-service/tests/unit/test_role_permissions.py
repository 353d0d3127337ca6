import pytest

from erp.api.permissions import can_manage, can_write_business, has_permission
from erp.db import models, schemas
from erp.db.repositories import permissions as permission_repo
from erp.utils.role_permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    RESOURCES,
    ROLES,
    get_default_permissions,
    iter_default_matrix,
    role_allows_manage,
    role_allows_write,
    validate_action,
    validate_resource,
    validate_role,
)


def test_default_matrix_covers_every_role_and_resource():
    matrix = iter_default_matrix()
    assert len(matrix) == len(ROLES) * len(RESOURCES)
    assert [(role, resource) for role, resource, _ in matrix][:2] == [("admin", "tasks"), ("admin", "users")]
    for role in ROLES:
        assert set(DEFAULT_ROLE_PERMISSIONS[role]) == set(RESOURCES)


def test_admin_cannot_edit_audit_logs_by_default():
    assert get_default_permissions("admin", "audit_logs") == {
        "can_create": False,
        "can_read": True,
        "can_update": False,
        "can_delete": False,
    }


@pytest.mark.parametrize(
    "role,resource,expected",
    [
        ("manager", "tasks", (True, True, True, True)),
        ("manager", "departments", (False, True, True, False)),
        ("operator", "tasks", (False, True, True, False)),
        ("operator", "users", (False, False, False, False)),
        ("viewer", "production_orders", (False, True, False, False)),
        ("viewer", "audit_logs", (False, False, False, False)),
    ],
)
def test_default_flags(role, resource, expected):
    flags = get_default_permissions(role, resource)
    assert (flags["can_create"], flags["can_read"], flags["can_update"], flags["can_delete"]) == expected


def test_default_flags_are_copies():
    flags = get_default_permissions("viewer", "tasks")
    flags["can_delete"] = True
    assert get_default_permissions("viewer", "tasks")["can_delete"] is False


def test_unknown_role_or_resource_raises():
    with pytest.raises(ValueError):
        get_default_permissions("superuser", "tasks")
    with pytest.raises(ValueError):
        get_default_permissions("admin", "memory")


def test_validators():
    validate_role("operator")
    validate_resource("role_permissions")
    validate_action("delete")
    with pytest.raises(ValueError, match="Invalid role"):
        validate_role("owner")
    with pytest.raises(ValueError, match="Invalid resource"):
        validate_resource("widgets")
    with pytest.raises(ValueError, match="Invalid action"):
        validate_action("approve")


def test_role_groups():
    assert role_allows_write("operator") and not role_allows_write("viewer")
    assert role_allows_manage("manager") and not role_allows_manage("operator")
    assert can_write_business({"role": "admin"})
    assert not can_write_business(None)
    assert can_manage({"role": "admin"})
    assert not can_manage({"role": "viewer"})


def test_has_permission_seeds_rows_lazily(db_session):
    assert db_session.query(models.RolePermission).count() == 0
    assert has_permission(db_session, "manager", "tasks", "delete") is True
    assert db_session.query(models.RolePermission).count() == len(ROLES) * len(RESOURCES)


def test_has_permission_rules(db_session):
    assert has_permission(db_session, "admin", "audit_logs", "delete") is True
    assert has_permission(db_session, "viewer", "tasks", "create") is False
    assert has_permission(db_session, "operator", "nonexistent", "read") is False
    assert has_permission(db_session, "operator", "tasks", "approve") is False
    assert has_permission(db_session, None, "tasks", "read") is False


def test_persisted_rows_override_defaults(db_session):
    row = permission_repo.get_role_permission(db_session, "viewer", "tasks")
    permission_repo.update_role_permission(db_session, row, schemas.RolePermissionUpdate(can_create=True))
    assert has_permission(db_session, "viewer", "tasks", "create") is True


def test_list_is_role_major_in_display_order(db_session):
    rows = permission_repo.list_role_permissions(db_session)
    assert [r.role for r in rows[: len(RESOURCES)]] == ["admin"] * len(RESOURCES)
    assert [r.resource for r in rows[: len(RESOURCES)]] == list(RESOURCES)
    assert rows[-1].role == "viewer"
