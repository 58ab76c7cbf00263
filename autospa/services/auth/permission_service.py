# autospa/services/auth/permission_service.py
"""Role defaults plus per-employee overrides"""
import logging
from typing import Dict, FrozenSet

from autospa.models.employee import Employee

logger = logging.getLogger(__name__)

APPOINTMENTS_VIEW = "appointments.view"
APPOINTMENTS_MANAGE = "appointments.manage"
APPOINTMENTS_RESCHEDULE = "appointments.reschedule"
POS_PROMOTIONS = "pos.promotions"
SETTINGS_MANAGE = "settings.manage"

ALL_PERMISSIONS: FrozenSet[str] = frozenset({
    APPOINTMENTS_VIEW,
    APPOINTMENTS_MANAGE,
    APPOINTMENTS_RESCHEDULE,
    POS_PROMOTIONS,
    SETTINGS_MANAGE,
})

ROLE_DEFAULTS: Dict[str, FrozenSet[str]] = {
    "super_admin": ALL_PERMISSIONS,
    "admin": frozenset({
        APPOINTMENTS_VIEW,
        APPOINTMENTS_MANAGE,
        APPOINTMENTS_RESCHEDULE,
        POS_PROMOTIONS,
    }),
    "cashier": frozenset({
        APPOINTMENTS_VIEW,
        APPOINTMENTS_MANAGE,
        POS_PROMOTIONS,
    }),
    "detailer": frozenset({
        APPOINTMENTS_VIEW,
    }),
}


class PermissionService:

    @staticmethod
    def has_permission(employee: Employee, key: str) -> bool:
        """
        Override wins when present ({"pos.promotions": false}); otherwise the
        role default. super_admin cannot be restricted. Inactive employees
        have no permissions.
        """
        if employee.status != "active":
            return False
        if employee.role == "super_admin":
            return True

        overrides = employee.permission_overrides or {}
        if isinstance(overrides, dict) and key in overrides:
            return bool(overrides[key])

        return key in ROLE_DEFAULTS.get(employee.role, frozenset())
