"""
Role permission predicates.

Every role check in the service goes through these functions. They are pure
and total: an unknown or missing role is simply denied. The API exposes the
same matrix to clients so they can hide controls, but routes always re-derive
the caller's role from the database and call these again before writing.
"""
from typing import Dict, Optional

from sinergi.constants import (
    ROLES, SUPERADMIN, HOTEL_MANAGER, SUPERVISOR, STAFF, APPROVED
)

CATALOG_MANAGERS = frozenset({SUPERADMIN, HOTEL_MANAGER})
MAINTENANCE_MANAGERS = frozenset({SUPERADMIN, HOTEL_MANAGER, SUPERVISOR})
MAINTENANCE_APPROVERS = frozenset({SUPERADMIN, SUPERVISOR})

# Fields a staff member may persist on an approved order
STAFF_EDITABLE_FIELDS = ("status", "start_date", "end_date", "evidence_urls")


def can_manage_catalog(role: Optional[str]) -> bool:
    """Create/edit locations and assets"""
    return role in CATALOG_MANAGERS


def can_delete_catalog(role: Optional[str]) -> bool:
    return role in CATALOG_MANAGERS


def can_create_maintenance(role: Optional[str]) -> bool:
    """Any authenticated role may file a maintenance request"""
    return role in ROLES


def can_manage_maintenance_full(role: Optional[str], approval_status: Optional[str] = APPROVED) -> bool:
    """Edit every mutable field of an order (cost, target, type included)"""
    return role in MAINTENANCE_MANAGERS and approval_status == APPROVED


def can_edit_maintenance_limited(role: Optional[str]) -> bool:
    """Staff path: status, dates and evidence only"""
    return role == STAFF


def can_delete_maintenance(role: Optional[str]) -> bool:
    return role in MAINTENANCE_MANAGERS


def can_approve_maintenance(role: Optional[str]) -> bool:
    return role in MAINTENANCE_APPROVERS


def can_manage_users_and_properties(role: Optional[str]) -> bool:
    return role == SUPERADMIN


def permission_matrix(role: Optional[str]) -> Dict[str, bool]:
    """All predicates for a role, keyed by name. Order-independent checks
    (full maintenance edit) are reported for an approved order."""
    return {
        "can_manage_catalog": can_manage_catalog(role),
        "can_delete_catalog": can_delete_catalog(role),
        "can_create_maintenance": can_create_maintenance(role),
        "can_manage_maintenance_full": can_manage_maintenance_full(role, APPROVED),
        "can_edit_maintenance_limited": can_edit_maintenance_limited(role),
        "can_delete_maintenance": can_delete_maintenance(role),
        "can_approve_maintenance": can_approve_maintenance(role),
        "can_manage_users_and_properties": can_manage_users_and_properties(role),
    }
