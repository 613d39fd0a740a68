"""
Locations API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
import logging

from sinergi.constants import LOCATION_TYPES
from sinergi.database import get_db
from sinergi.models import Location, MaintenanceOrder
from sinergi.permissions import can_manage_catalog, can_delete_catalog
from sinergi.schemas import LocationCreate
from sinergi.services.dependency import SessionContext, get_session_context, get_accessible_property

router = APIRouter()
logger = logging.getLogger(__name__)


def location_to_response(location: Location) -> dict:
    return {
        "id": location.id,
        "property_id": location.property_id,
        "name": location.name,
        "type": location.type,
        "created_at": location.created_at.isoformat() if location.created_at else None,
        "updated_at": location.updated_at.isoformat() if location.updated_at else None,
    }


def get_location_or_404(db: Session, ctx: SessionContext, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    get_accessible_property(db, ctx, location.property_id)
    return location


@router.get("/properties/{property_id}/locations")
async def get_locations(
    property_id: int,
    grouped: bool = Query(False, description="Group locations by type"),
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    get_accessible_property(db, ctx, property_id)

    locations = db.query(Location).filter(
        Location.property_id == property_id
    ).order_by(Location.name).all()

    if not grouped:
        return [location_to_response(l) for l in locations]

    groups = {t: [] for t in LOCATION_TYPES}
    for location in locations:
        groups.setdefault(location.type, []).append(location_to_response(location))
    return groups


@router.post("/properties/{property_id}/locations")
async def create_location(
    property_id: int,
    data: LocationCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    get_accessible_property(db, ctx, property_id)
    if not can_manage_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage locations")
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location name is required")

    try:
        location = Location(property_id=property_id, name=data.name.strip(), type=data.type)
        db.add(location)
        db.commit()
        db.refresh(location)
        logger.info(f"Location {location.name} created in property {property_id} by {ctx.email}")
        return location_to_response(location)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating location: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating location: {str(e)}"
        )


@router.put("/locations/{location_id}")
async def update_location(
    location_id: int,
    data: LocationCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    location = get_location_or_404(db, ctx, location_id)
    if not can_manage_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage locations")
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location name is required")

    try:
        location.name = data.name.strip()
        location.type = data.type
        db.commit()
        db.refresh(location)
        logger.info(f"Location {location.id} updated by {ctx.email}")
        return location_to_response(location)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating location: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating location: {str(e)}"
        )


@router.delete("/locations/{location_id}")
async def delete_location(
    location_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """Delete a location. Assets placed there keep existing without a location;
    locations still targeted by maintenance orders are kept."""
    location = get_location_or_404(db, ctx, location_id)
    if not can_delete_catalog(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete locations")

    order_count = db.query(MaintenanceOrder).filter(MaintenanceOrder.location_id == location.id).count()
    if order_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Location is the target of {order_count} maintenance order(s) and cannot be deleted"
        )

    try:
        name = location.name
        db.delete(location)
        db.commit()
        logger.info(f"Location {name} deleted by {ctx.email}")
        return {"success": True, "message": f"Location {name} deleted"}
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting location: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting location: {str(e)}"
        )
