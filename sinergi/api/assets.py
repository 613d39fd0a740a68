"""
Assets API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload
from typing import Optional
from decimal import Decimal
import logging

from sinergi.database import get_db
from sinergi.models import Asset, Location, MaintenanceOrder
from sinergi.permissions import can_manage_catalog, can_delete_catalog
from sinergi.schemas import AssetCreate
from sinergi.services.dependency import SessionContext, get_session_context, get_accessible_property
from sinergi.services.reports import sanitize_search

router = APIRouter()
logger = logging.getLogger(__name__)


def decimal_to_float(val):
    """Convert Decimal to float for JSON serialization"""
    if val is None:
        return None
    if isinstance(val, Decimal):
        return float(val)
    return val


def asset_to_response(asset: Asset) -> dict:
    return {
        "id": asset.id,
        "property_id": asset.property_id,
        "location_id": asset.location_id,
        "location_name": asset.location.name if asset.location else None,
        "is_movable": bool(asset.is_movable),
        "name": asset.name,
        "category": asset.category,
        "brand": asset.brand,
        "series": asset.series,
        "purchase_price": decimal_to_float(asset.purchase_price),
        "condition": asset.condition,
        "status": asset.status,
        "last_maintenance_date": asset.last_maintenance_date.isoformat() if asset.last_maintenance_date else None,
        "next_maintenance_date": asset.next_maintenance_date.isoformat() if asset.next_maintenance_date else None,
        "created_at": asset.created_at.isoformat() if asset.created_at else None,
        "updated_at": asset.updated_at.isoformat() if asset.updated_at else None,
    }


def get_asset_or_404(db: Session, ctx: SessionContext, asset_id: int) -> Asset:
    asset = db.query(Asset).options(joinedload(Asset.location)).filter(Asset.id == asset_id).first()
    if not asset:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    get_accessible_property(db, ctx, asset.property_id)
    return asset


def _resolve_location(db: Session, property_id: int, data: AssetCreate) -> Optional[int]:
    """Movable assets have no location; a fixed one must sit in the same property"""
    if data.is_movable or not data.location_id:
        return None
    location = db.query(Location).filter(Location.id == data.location_id).first()
    if not location or location.property_id != property_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location not found in this property")
    return location.id


def _apply(asset: Asset, data: AssetCreate, location_id: Optional[int]):
    asset.name = data.name.strip()
    asset.category = data.category
    asset.is_movable = data.is_movable
    asset.location_id = location_id
    asset.brand = data.brand or None
    asset.series = data.series or None
    asset.purchase_price = data.purchase_price
    asset.condition = data.condition
    asset.status = data.status
    asset.last_maintenance_date = data.last_maintenance_date
    asset.next_maintenance_date = data.next_maintenance_date


@router.get("/properties/{property_id}/assets")
async def get_assets(
    property_id: int,
    search: Optional[str] = Query(None, description="Search in asset name"),
    category: Optional[str] = Query(None),
    condition: Optional[str] = Query(None),
    asset_status: Optional[str] = Query(None, alias="status"),
    location_id: Optional[int] = Query(None),
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    get_accessible_property(db, ctx, property_id)

    query = db.query(Asset).options(joinedload(Asset.location)).filter(Asset.property_id == property_id)
    if category:
        query = query.filter(Asset.category == category)
    if condition:
        query = query.filter(Asset.condition == condition)
    if asset_status:
        query = query.filter(Asset.status == asset_status)
    if location_id:
        query = query.filter(Asset.location_id == location_id)

    term = sanitize_search(search)
    if term:
        query = query.filter(Asset.name.ilike(f"%{term}%"))

    return [asset_to_response(a) for a in query.order_by(Asset.name).all()]


@router.get("/assets/{asset_id}")
async def get_asset(
    asset_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    return asset_to_response(get_asset_or_404(db, ctx, asset_id))


@router.post("/properties/{property_id}/assets")
async def create_asset(
    property_id: int,
    data: AssetCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    get_accessible_property(db, ctx, property_id)
    if not can_manage_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage assets")
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Asset name is required")

    location_id = _resolve_location(db, property_id, data)

    try:
        asset = Asset(property_id=property_id)
        _apply(asset, data, location_id)
        db.add(asset)
        db.commit()
        db.refresh(asset)
        logger.info(f"Asset {asset.name} created in property {property_id} by {ctx.email}")
        return asset_to_response(asset)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating asset: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating asset: {str(e)}"
        )


@router.put("/assets/{asset_id}")
async def update_asset(
    asset_id: int,
    data: AssetCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """Full replace of an asset's editable fields"""
    asset = get_asset_or_404(db, ctx, asset_id)
    if not can_manage_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage assets")
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Asset name is required")

    location_id = _resolve_location(db, asset.property_id, data)

    try:
        _apply(asset, data, location_id)
        db.commit()
        db.refresh(asset)
        logger.info(f"Asset {asset.id} updated by {ctx.email}")
        return asset_to_response(asset)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating asset: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating asset: {str(e)}"
        )


@router.delete("/assets/{asset_id}")
async def delete_asset(
    asset_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    asset = get_asset_or_404(db, ctx, asset_id)
    if not can_delete_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete assets")

    order_count = db.query(MaintenanceOrder).filter(MaintenanceOrder.asset_id == asset.id).count()
    if order_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Asset is the target of {order_count} maintenance order(s) and cannot be deleted"
        )

    try:
        name = asset.name
        db.delete(asset)
        db.commit()
        logger.info(f"Asset {name} deleted by {ctx.email}")
        return {"success": True, "message": f"Asset {name} deleted"}
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting asset: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting asset: {str(e)}"
        )
