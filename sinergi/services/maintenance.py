"""
Maintenance work-order workflow.

An order carries two independent state variables:

* ``approval_status``: pending_approval -> approved | rejected. Both outcomes
  are terminal and are stamped with the approver and a timestamp.
* ``status``: pending / in_progress / completed / cancelled. Any editor may
  set any value; there is no transition graph.

Field edits exist only for approved orders. Staff persist status, dates and
evidence; the manager tier (superadmin, hotel_manager, supervisor) persists
every mutable field. ``code``, the property and the approval stamp are never
editable.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from sinergi.constants import (
    ASSET_REPAIR, LOCATION_RENOVATION, PENDING_APPROVAL, APPROVED, REJECTED
)
from sinergi.models import Asset, CodeSequence, Location, MaintenanceOrder
from sinergi.permissions import (
    STAFF_EDITABLE_FIELDS,
    can_approve_maintenance,
    can_create_maintenance,
    can_delete_maintenance,
    can_edit_maintenance_limited,
    can_manage_maintenance_full,
)
from sinergi.schemas import MaintenanceCreate, MaintenanceUpdate

logger = logging.getLogger(__name__)

CODE_PREFIX = "MT"

FULL_EDIT_FIELDS = (
    "title", "type", "asset_id", "location_id", "description", "total_cost",
    "status", "start_date", "end_date", "evidence_urls",
)
# Columns that can never be cleared through an edit
REQUIRED_FIELDS = ("title", "type", "status", "start_date")


class MaintenanceWorkflowError(Exception):
    """Request conflicts with the order's current state or its data is invalid"""


class MaintenancePermissionError(Exception):
    """Caller's role may not perform the action"""


def _highest_code_number(db: Session, prefix: str) -> int:
    codes = db.query(MaintenanceOrder.code).filter(MaintenanceOrder.code.like(f"{prefix}%")).all()
    numbers = [int(code.split("-")[-1]) for (code,) in codes if code.split("-")[-1].isdigit()]
    return max(numbers, default=0)


def generate_maintenance_code(db: Session) -> str:
    """Generate unique maintenance code, e.g. MT-2025-00042.

    Numbers come from a per-year counter row locked for the rest of the
    transaction, so codes of deleted orders are not handed out again.
    """
    year = datetime.now().year
    prefix = f"{CODE_PREFIX}-{year}-"

    sequence = db.query(CodeSequence).filter(
        CodeSequence.prefix == prefix
    ).with_for_update().first()

    if sequence is None:
        sequence = CodeSequence(prefix=prefix, last_value=_highest_code_number(db, prefix))
        db.add(sequence)

    sequence.last_value += 1
    return f"{prefix}{sequence.last_value:05d}"


def resolve_target(
    db: Session,
    property_id: int,
    maintenance_type: str,
    asset_id: Optional[int],
    location_id: Optional[int],
) -> Tuple[Optional[int], Optional[int]]:
    """Return (asset_id, location_id) with the reference the type does not use cleared.

    The kept reference must exist and belong to ``property_id``.
    """
    if maintenance_type == ASSET_REPAIR:
        if not asset_id:
            raise MaintenanceWorkflowError("Asset is required for asset repair")
        asset = db.query(Asset).filter(Asset.id == asset_id).first()
        if not asset or asset.property_id != property_id:
            raise MaintenanceWorkflowError("Asset not found in this property")
        return asset.id, None

    if maintenance_type == LOCATION_RENOVATION:
        if not location_id:
            raise MaintenanceWorkflowError("Location is required for location renovation")
        location = db.query(Location).filter(Location.id == location_id).first()
        if not location or location.property_id != property_id:
            raise MaintenanceWorkflowError("Location not found in this property")
        return None, location.id

    raise MaintenanceWorkflowError(f"Invalid maintenance type: {maintenance_type}")


def _check_dates(start_date, end_date):
    if start_date and end_date and end_date < start_date:
        raise MaintenanceWorkflowError("End date cannot be before start date")


def _normalize_evidence(urls):
    return list(urls) if urls else None


def create_order(db: Session, actor, property_id: int, data: MaintenanceCreate) -> MaintenanceOrder:
    if not can_create_maintenance(actor.role):
        raise MaintenancePermissionError("Not allowed to create maintenance requests")

    asset_id, location_id = resolve_target(db, property_id, data.type, data.asset_id, data.location_id)
    _check_dates(data.start_date, data.end_date)

    order = MaintenanceOrder(
        code=generate_maintenance_code(db),
        property_id=property_id,
        type=data.type,
        asset_id=asset_id,
        location_id=location_id,
        title=data.title,
        description=data.description or None,
        total_cost=data.total_cost or Decimal("0"),
        evidence_urls=_normalize_evidence(data.evidence_urls),
        status=data.status,
        start_date=data.start_date,
        end_date=data.end_date,
        approval_status=PENDING_APPROVAL,
        created_by=actor.id,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(f"Maintenance {order.code} created by {actor.email}")
    return order


def _decide(db: Session, actor, order: MaintenanceOrder, outcome: str, reason: Optional[str] = None) -> MaintenanceOrder:
    if not can_approve_maintenance(actor.role):
        raise MaintenancePermissionError("Only superadmin or supervisor can approve maintenance")

    if order.approval_status != PENDING_APPROVAL:
        raise MaintenanceWorkflowError(f"Maintenance order is already {order.approval_status}")

    values = {
        MaintenanceOrder.approval_status: outcome,
        MaintenanceOrder.approved_by: actor.id,
        MaintenanceOrder.approved_at: datetime.utcnow(),
    }
    if outcome == REJECTED:
        values[MaintenanceOrder.rejection_reason] = reason.strip() if reason and reason.strip() else None

    # Conditional on the pending state so a concurrent decision cannot be overwritten
    updated = db.query(MaintenanceOrder).filter(
        MaintenanceOrder.id == order.id,
        MaintenanceOrder.approval_status == PENDING_APPROVAL
    ).update(values, synchronize_session=False)

    if updated == 0:
        db.rollback()
        db.refresh(order)
        raise MaintenanceWorkflowError(f"Maintenance order is already {order.approval_status}")

    db.commit()
    db.refresh(order)
    logger.info(f"Maintenance {order.code} {outcome} by {actor.email}")
    return order


def approve_order(db: Session, actor, order: MaintenanceOrder) -> MaintenanceOrder:
    return _decide(db, actor, order, APPROVED)


def reject_order(db: Session, actor, order: MaintenanceOrder, reason: Optional[str] = None) -> MaintenanceOrder:
    return _decide(db, actor, order, REJECTED, reason)


def editable_fields(role: Optional[str], approval_status: str) -> Tuple[str, ...]:
    """Fields the role may persist on an order in the given approval state"""
    if approval_status != APPROVED:
        return ()
    if can_manage_maintenance_full(role, approval_status):
        return FULL_EDIT_FIELDS
    if can_edit_maintenance_limited(role):
        return STAFF_EDITABLE_FIELDS
    return ()


def update_order(db: Session, actor, order: MaintenanceOrder, data: MaintenanceUpdate) -> MaintenanceOrder:
    if order.approval_status == PENDING_APPROVAL:
        raise MaintenanceWorkflowError("Maintenance order must be approved before it can be edited")
    if order.approval_status == REJECTED:
        raise MaintenanceWorkflowError("Rejected maintenance order cannot be edited")

    allowed = editable_fields(actor.role, order.approval_status)
    if not allowed:
        raise MaintenancePermissionError("Not allowed to edit this maintenance order")

    submitted = data.model_dump(exclude_unset=True)
    ignored = sorted(set(submitted) - set(allowed))
    if ignored:
        logger.debug(f"Ignoring fields {ignored} on {order.code} for role {actor.role}")

    changes = {
        field: value for field, value in submitted.items()
        if field in allowed and not (value is None and field in REQUIRED_FIELDS)
    }

    if {"type", "asset_id", "location_id"} & set(changes):
        maintenance_type = changes.get("type", order.type)
        asset_id, location_id = resolve_target(
            db,
            order.property_id,
            maintenance_type,
            changes.get("asset_id", order.asset_id),
            changes.get("location_id", order.location_id),
        )
        changes["asset_id"] = asset_id
        changes["location_id"] = location_id

    _check_dates(changes.get("start_date", order.start_date), changes.get("end_date", order.end_date))

    if "evidence_urls" in changes:
        changes["evidence_urls"] = _normalize_evidence(changes["evidence_urls"])
    if "total_cost" in changes and changes["total_cost"] is None:
        changes["total_cost"] = Decimal("0")

    for field, value in changes.items():
        setattr(order, field, value)

    db.commit()
    db.refresh(order)

    logger.info(f"Maintenance {order.code} updated by {actor.email} ({', '.join(sorted(changes)) or 'no changes'})")
    return order


def delete_order(db: Session, actor, order: MaintenanceOrder) -> None:
    if not can_delete_maintenance(actor.role):
        raise MaintenancePermissionError("Not allowed to delete maintenance orders")

    code = order.code
    db.delete(order)
    db.commit()
    logger.info(f"Maintenance {code} deleted by {actor.email}")
