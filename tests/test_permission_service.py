import pytest

from autospa.services.auth.permission_service import (
    APPOINTMENTS_MANAGE,
    APPOINTMENTS_RESCHEDULE,
    APPOINTMENTS_VIEW,
    POS_PROMOTIONS,
    SETTINGS_MANAGE,
    PermissionService,
)


@pytest.mark.parametrize("role,key,expected", [
    ("admin", SETTINGS_MANAGE, False),
    ("admin", APPOINTMENTS_RESCHEDULE, True),
    ("cashier", POS_PROMOTIONS, True),
    ("cashier", APPOINTMENTS_RESCHEDULE, False),
    ("detailer", APPOINTMENTS_VIEW, True),
    ("detailer", APPOINTMENTS_MANAGE, False),
    ("unknown", APPOINTMENTS_VIEW, False),
])
def test_role_defaults(make_employee, role, key, expected):
    assert PermissionService.has_permission(make_employee(role=role), key) is expected


def test_overrides_win_over_role_defaults(make_employee):
    cashier = make_employee(role="cashier", overrides={POS_PROMOTIONS: False, APPOINTMENTS_RESCHEDULE: True})

    assert PermissionService.has_permission(cashier, POS_PROMOTIONS) is False
    assert PermissionService.has_permission(cashier, APPOINTMENTS_RESCHEDULE) is True
    assert PermissionService.has_permission(cashier, APPOINTMENTS_VIEW) is True


def test_owner_cannot_be_restricted(make_employee):
    owner = make_employee(role="super_admin", overrides={SETTINGS_MANAGE: False})

    assert PermissionService.has_permission(owner, SETTINGS_MANAGE) is True


def test_inactive_employees_have_no_permissions(make_employee):
    owner = make_employee(role="super_admin", status="inactive")

    assert PermissionService.has_permission(owner, APPOINTMENTS_VIEW) is False
