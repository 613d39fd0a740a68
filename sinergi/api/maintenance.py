"""
Maintenance API endpoints - work orders, approval and evidence
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
import logging

from sinergi.database import get_db
from sinergi.models import MaintenanceOrder
from sinergi.schemas import MaintenanceCreate, MaintenanceUpdate, RejectRequest
from sinergi.services import maintenance as workflow
from sinergi.services.dependency import SessionContext, get_session_context, get_accessible_property
from sinergi.services.maintenance import MaintenanceWorkflowError, MaintenancePermissionError
from sinergi.services.reports import sanitize_search, maintenance_target_name
from sinergi.services.storage import upload_evidence_batch

router = APIRouter()
logger = logging.getLogger(__name__)


def decimal_to_float(val):
    """Convert Decimal to float for JSON serialization"""
    if val is None:
        return None
    if isinstance(val, Decimal):
        return float(val)
    return val


def maintenance_to_response(order: MaintenanceOrder) -> dict:
    return {
        "id": order.id,
        "code": order.code,
        "property_id": order.property_id,
        "type": order.type,
        "asset_id": order.asset_id,
        "location_id": order.location_id,
        "target": maintenance_target_name(order),
        "title": order.title,
        "description": order.description,
        "total_cost": decimal_to_float(order.total_cost) or 0,
        "evidence_urls": order.evidence_urls or [],
        "status": order.status,
        "start_date": order.start_date.isoformat() if order.start_date else None,
        "end_date": order.end_date.isoformat() if order.end_date else None,
        "approval_status": order.approval_status,
        "approved_by": order.approved_by,
        "approved_at": order.approved_at.isoformat() if order.approved_at else None,
        "rejection_reason": order.rejection_reason,
        "created_by": order.created_by,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }


def get_order_or_404(db: Session, ctx: SessionContext, order_id: int) -> MaintenanceOrder:
    order = db.query(MaintenanceOrder).options(
        joinedload(MaintenanceOrder.asset),
        joinedload(MaintenanceOrder.location)
    ).filter(MaintenanceOrder.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance order not found")
    get_accessible_property(db, ctx, order.property_id)
    return order


def workflow_http_error(e: Exception) -> HTTPException:
    if isinstance(e, MaintenancePermissionError):
        logger.warning(f"Maintenance action denied: {e}")
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/properties/{property_id}/maintenance")
async def get_maintenance_orders(
    property_id: int,
    search: Optional[str] = Query(None, description="Search in title and description"),
    maintenance_type: Optional[str] = Query(None, alias="type"),
    order_status: Optional[str] = Query(None, alias="status"),
    approval_status: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, description="Start date on or after"),
    date_to: Optional[date] = Query(None, description="Start date on or before"),
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    get_accessible_property(db, ctx, property_id)

    query = db.query(MaintenanceOrder).options(
        joinedload(MaintenanceOrder.asset),
        joinedload(MaintenanceOrder.location)
    ).filter(MaintenanceOrder.property_id == property_id)

    if maintenance_type:
        query = query.filter(MaintenanceOrder.type == maintenance_type)
    if order_status:
        query = query.filter(MaintenanceOrder.status == order_status)
    if approval_status:
        query = query.filter(MaintenanceOrder.approval_status == approval_status)
    if date_from:
        query = query.filter(MaintenanceOrder.start_date >= date_from)
    if date_to:
        query = query.filter(MaintenanceOrder.start_date <= date_to)

    term = sanitize_search(search)
    if term:
        query = query.filter(or_(
            MaintenanceOrder.title.ilike(f"%{term}%"),
            MaintenanceOrder.description.ilike(f"%{term}%")
        ))

    orders = query.order_by(MaintenanceOrder.created_at.desc(), MaintenanceOrder.id.desc()).all()
    return [maintenance_to_response(o) for o in orders]


@router.get("/maintenance/{order_id}")
async def get_maintenance_order(
    order_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    return maintenance_to_response(get_order_or_404(db, ctx, order_id))


@router.post("/properties/{property_id}/maintenance")
async def create_maintenance_order(
    property_id: int,
    data: MaintenanceCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """File a maintenance request. It starts out waiting for approval."""
    get_accessible_property(db, ctx, property_id)
    if not data.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    try:
        order = workflow.create_order(db, ctx, property_id, data)
    except (MaintenanceWorkflowError, MaintenancePermissionError) as e:
        raise workflow_http_error(e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating maintenance order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating maintenance order: {str(e)}"
        )

    return maintenance_to_response(get_order_or_404(db, ctx, order.id))


@router.put("/maintenance/{order_id}")
async def update_maintenance_order(
    order_id: int,
    data: MaintenanceUpdate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """Edit an approved order. Staff changes are limited to status, dates and evidence."""
    order = get_order_or_404(db, ctx, order_id)

    try:
        workflow.update_order(db, ctx, order, data)
    except (MaintenanceWorkflowError, MaintenancePermissionError) as e:
        db.rollback()
        raise workflow_http_error(e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating maintenance order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating maintenance order: {str(e)}"
        )

    return maintenance_to_response(get_order_or_404(db, ctx, order_id))


@router.delete("/maintenance/{order_id}")
async def delete_maintenance_order(
    order_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    order = get_order_or_404(db, ctx, order_id)
    code = order.code

    try:
        workflow.delete_order(db, ctx, order)
    except MaintenancePermissionError as e:
        raise workflow_http_error(e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting maintenance order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting maintenance order: {str(e)}"
        )

    return {"success": True, "message": f"Maintenance {code} deleted"}


@router.post("/maintenance/{order_id}/approve")
async def approve_maintenance_order(
    order_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    order = get_order_or_404(db, ctx, order_id)

    try:
        workflow.approve_order(db, ctx, order)
    except (MaintenanceWorkflowError, MaintenancePermissionError) as e:
        raise workflow_http_error(e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error approving maintenance order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error approving maintenance order: {str(e)}"
        )

    return maintenance_to_response(get_order_or_404(db, ctx, order_id))


@router.post("/maintenance/{order_id}/reject")
async def reject_maintenance_order(
    order_id: int,
    data: Optional[RejectRequest] = None,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    order = get_order_or_404(db, ctx, order_id)
    reason = data.rejection_reason if data else None

    try:
        workflow.reject_order(db, ctx, order, reason)
    except (MaintenanceWorkflowError, MaintenancePermissionError) as e:
        raise workflow_http_error(e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error rejecting maintenance order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error rejecting maintenance order: {str(e)}"
        )

    return maintenance_to_response(get_order_or_404(db, ctx, order_id))


@router.post("/properties/{property_id}/evidence")
async def upload_evidence(
    property_id: int,
    files: List[UploadFile] = File(...),
    maintenance_id: Optional[int] = Form(None),
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """Upload evidence photos as WebP.

    Files are uploaded one after another; a failure is reported per file and
    does not stop the rest. With ``maintenance_id`` the new URLs are appended
    to that order through the normal edit rules.
    """
    get_accessible_property(db, ctx, property_id)

    order = None
    if maintenance_id is not None:
        order = get_order_or_404(db, ctx, maintenance_id)
        if order.property_id != property_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Maintenance order is not in this property")
        if not workflow.editable_fields(ctx.role, order.approval_status):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to edit this maintenance order")

    payload = []
    for upload in files:
        payload.append((upload.filename, await upload.read(), upload.content_type))

    result = upload_evidence_batch(property_id, payload)
    logger.info(f"Evidence upload for property {property_id} by {ctx.email}: {len(result['urls'])} ok, {len(result['errors'])} failed")

    if order is not None and result["urls"]:
        try:
            workflow.update_order(
                db, ctx, order,
                MaintenanceUpdate(evidence_urls=list(order.evidence_urls or []) + result["urls"])
            )
        except (MaintenanceWorkflowError, MaintenancePermissionError) as e:
            db.rollback()
            raise workflow_http_error(e)
        result["maintenance"] = maintenance_to_response(get_order_or_404(db, ctx, order.id))

    return result


@router.get("/maintenance/{order_id}/export/pdf")
async def export_maintenance_pdf(
    order_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """Export a maintenance order as PDF"""
    order = get_order_or_404(db, ctx, order_id)
    order_data = maintenance_to_response(order)

    from sinergi.services.maintenance_report import MaintenanceReportService
    report_service = MaintenanceReportService()
    pdf_data = report_service.generate_pdf(order_data)

    filename = f"Maintenance_{order.code}_{datetime.now().strftime('%Y%m%d')}.pdf"
    return Response(
        content=pdf_data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
