"""
Reports API endpoints - filtered previews and xlsx/pdf exports
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional
import logging

from sinergi.database import get_db
from sinergi.models import Asset, MaintenanceOrder, Property
from sinergi.permissions import can_manage_users_and_properties
from sinergi.schemas import AssetReportRequest, MaintenanceReportRequest
from sinergi.services import reports
from sinergi.services.dependency import SessionContext, get_session_context, get_accessible_property
from sinergi.api.assets import asset_to_response
from sinergi.api.maintenance import maintenance_to_response

router = APIRouter()
logger = logging.getLogger(__name__)


def resolve_scope(db: Session, ctx: SessionContext, scope: str, property_id: Optional[int]) -> Optional[Property]:
    """Property for a `current` report, or None for an all-properties one"""
    if scope == "all":
        if not can_manage_users_and_properties(ctx.role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only superadmin can report across all properties")
        return None
    if property_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="property_id is required for the current property scope")
    return get_accessible_property(db, ctx, property_id)


def _asset_results(db: Session, ctx: SessionContext, filters: AssetReportRequest):
    prop = resolve_scope(db, ctx, filters.scope, filters.property_id)
    query = reports.build_asset_query(db, filters, prop.id if prop else None)
    query = reports.apply_selection(query, Asset, filters.selected_ids)
    return prop, query.order_by(Asset.name).all()


def _maintenance_results(db: Session, ctx: SessionContext, filters: MaintenanceReportRequest):
    prop = resolve_scope(db, ctx, filters.scope, filters.property_id)
    query = reports.build_maintenance_query(db, filters, prop.id if prop else None)
    query = reports.apply_selection(query, MaintenanceOrder, filters.selected_ids)
    return prop, query.order_by(MaintenanceOrder.start_date.desc(), MaintenanceOrder.id.desc()).all()


def _file_response(kind: str, filters, prop: Optional[Property], rows: list, sheet_name: str) -> Response:
    property_name = prop.name if prop else None
    if filters.format == "pdf":
        content = reports.rows_to_pdf(rows, reports.report_title(kind, filters.scope, property_name))
        media_type = reports.PDF_MEDIA_TYPE
    else:
        content = reports.rows_to_xlsx(rows, sheet_name)
        media_type = reports.XLSX_MEDIA_TYPE

    filename = reports.report_filename(kind, filters.scope, property_name, filters.format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/reports/assets/preview")
async def preview_assets_report(
    filters: AssetReportRequest,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    _, assets = _asset_results(db, ctx, filters)
    return {"count": len(assets), "items": [asset_to_response(a) for a in assets]}


@router.post("/reports/assets/export")
async def export_assets_report(
    filters: AssetReportRequest,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    prop, assets = _asset_results(db, ctx, filters)
    if not assets:
        return {"success": False, "message": reports.EMPTY_ASSETS_MESSAGE, "count": 0}

    rows = [reports.asset_to_row(a) for a in assets]
    logger.info(f"Asset report ({filters.format}, {len(rows)} rows) exported by {ctx.email}")
    return _file_response("assets", filters, prop, rows, "Assets")


@router.post("/reports/maintenance/preview")
async def preview_maintenance_report(
    filters: MaintenanceReportRequest,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    _, orders = _maintenance_results(db, ctx, filters)
    return {"count": len(orders), "items": [maintenance_to_response(o) for o in orders]}


@router.post("/reports/maintenance/export")
async def export_maintenance_report(
    filters: MaintenanceReportRequest,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    prop, orders = _maintenance_results(db, ctx, filters)
    if not orders:
        return {"success": False, "message": reports.EMPTY_MAINTENANCE_MESSAGE, "count": 0}

    rows = [reports.maintenance_to_row(o) for o in orders]
    logger.info(f"Maintenance report ({filters.format}, {len(rows)} rows) exported by {ctx.email}")
    return _file_response("maintenance", filters, prop, rows, "Maintenance")
