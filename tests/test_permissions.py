# tests/test_permissions.py
import pytest

from conftest import make_admin, make_client
from logistics_backend.core.auth.dependencies import Principal
from logistics_backend.core.permissions import PermissionSet, authorize
from logistics_backend.shared.domain.enums import AdminAction, AdminModule


def test_permits_only_granted_pairs():
    permissions = PermissionSet.from_dict({"shipments": ["read", "update"]})

    assert permissions.permits("shipments", "read")
    assert permissions.permits(AdminModule.SHIPMENTS, AdminAction.UPDATE)
    assert not permissions.permits("shipments", "delete")
    assert not permissions.permits("payments", "read")


def test_list_form_merges_duplicate_modules():
    permissions = PermissionSet.from_dict([
        {"module": "drivers", "actions": ["read"]},
        {"module": "drivers", "actions": ["approve"]},
    ])

    assert permissions.to_dict() == {"drivers": ["read", "approve"]}
    assert permissions.modules() == [AdminModule.DRIVERS]


def test_list_form_keeps_every_grant_for_a_module(db):
    operator = Principal("admin", make_admin(db, role="operator", permissions=[
        {"module": "payments", "actions": ["read"]},
        {"module": "payments", "actions": ["update"]},
        {"module": "shipments", "actions": ["read"]},
    ]))

    assert authorize(operator, "payments", "read")
    assert authorize(operator, "payments", "update")
    assert authorize(operator, "shipments", "read")
    assert not authorize(operator, "payments", "delete")


def test_unknown_names_are_rejected():
    with pytest.raises(ValueError):
        PermissionSet.from_dict({"warehouse": ["read"]})
    with pytest.raises(ValueError):
        PermissionSet.from_dict({"drivers": ["teleport"]})


def test_full_set():
    permissions = PermissionSet.full()
    assert all(permissions.permits(module, action) for module in AdminModule for action in AdminAction)


def test_super_admin_bypasses_permission_set(db):
    super_admin = Principal("admin", make_admin(db, role="super_admin", permissions={}))
    operator = Principal("admin", make_admin(db, role="operator", permissions={"payments": ["read"]}))

    assert authorize(super_admin, "users", "delete")
    assert authorize(operator, "payments", "read")
    assert not authorize(operator, "payments", "update")


def test_non_admins_hold_no_permissions(db):
    shipper = Principal("client", make_client(db))
    assert not authorize(shipper, "shipments", "read")
    assert shipper.permission_set.to_dict() == {}
