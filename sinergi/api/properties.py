"""
Properties API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from sinergi.database import get_db
from sinergi.models import Property
from sinergi.schemas import PropertyCreate
from sinergi.services.dependency import (
    SessionContext, get_session_context, require_superadmin, get_accessible_property
)
from sinergi.services.overview import get_property_overview
from sinergi.api.assets import asset_to_response
from sinergi.api.maintenance import maintenance_to_response

router = APIRouter()
logger = logging.getLogger(__name__)


def property_to_response(prop: Property) -> dict:
    return {
        "id": prop.id,
        "name": prop.name,
        "address": prop.address,
        "description": prop.description,
        "created_at": prop.created_at.isoformat() if prop.created_at else None,
        "updated_at": prop.updated_at.isoformat() if prop.updated_at else None,
    }


@router.get("/properties")
async def get_properties(ctx: SessionContext = Depends(get_session_context)):
    """Properties visible to the caller, ordered by name"""
    return [property_to_response(p) for p in ctx.visible_properties()]


@router.get("/properties/{property_id}")
async def get_property(
    property_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    return property_to_response(get_accessible_property(db, ctx, property_id))


@router.get("/properties/{property_id}/overview")
async def get_overview(
    property_id: int,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    prop = get_accessible_property(db, ctx, property_id)
    stats = get_property_overview(db, prop.id)
    stats["property"] = property_to_response(prop)
    stats["upcoming_maintenance"] = [asset_to_response(a) for a in stats["upcoming_maintenance"]]
    stats["recent_maintenance"] = [maintenance_to_response(m) for m in stats["recent_maintenance"]]
    return stats


@router.post("/properties")
async def create_property(
    data: PropertyCreate,
    ctx: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Property name is required")

    try:
        prop = Property(
            name=data.name.strip(),
            address=data.address or None,
            description=data.description or None
        )
        db.add(prop)
        db.commit()
        db.refresh(prop)
        logger.info(f"Property {prop.name} created by {ctx.email}")
        return property_to_response(prop)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating property: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating property: {str(e)}"
        )


@router.put("/properties/{property_id}")
async def update_property(
    property_id: int,
    data: PropertyCreate,
    ctx: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Property name is required")

    try:
        prop.name = data.name.strip()
        prop.address = data.address or None
        prop.description = data.description or None
        db.commit()
        db.refresh(prop)
        logger.info(f"Property {prop.id} updated by {ctx.email}")
        return property_to_response(prop)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating property: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating property: {str(e)}"
        )


@router.delete("/properties/{property_id}")
async def delete_property(
    property_id: int,
    ctx: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Delete a property with its locations, assets and maintenance orders"""
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    try:
        name = prop.name
        db.delete(prop)
        db.commit()
        logger.info(f"Property {name} deleted by {ctx.email}")
        return {"success": True, "message": f"Property {name} deleted"}
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting property: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting property: {str(e)}"
        )
