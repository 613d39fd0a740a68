"""
Property overview - counts and short lists for the property dashboard
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, case
from sqlalchemy.orm import Session, joinedload

from sinergi.models import Asset, Location, MaintenanceOrder

UPCOMING_DAYS = 30
RECENT_LIMIT = 5
OPEN_STATUSES = ['pending', 'in_progress']


def get_property_overview(db: Session, property_id: int, today: Optional[date] = None) -> dict:
    today = today or date.today()
    horizon = today + timedelta(days=UPCOMING_DAYS)

    location_count = db.query(func.count(Location.id)).filter(
        Location.property_id == property_id
    ).scalar() or 0

    asset_count = db.query(func.count(Asset.id)).filter(
        Asset.property_id == property_id
    ).scalar() or 0

    maintenance_stats = db.query(
        func.count(MaintenanceOrder.id).label('total'),
        func.sum(case((MaintenanceOrder.status.in_(OPEN_STATUSES), 1), else_=0)).label('open'),
        func.sum(case((MaintenanceOrder.approval_status == 'pending_approval', 1), else_=0)).label('awaiting_approval')
    ).filter(
        MaintenanceOrder.property_id == property_id
    ).first()

    upcoming = db.query(Asset).options(joinedload(Asset.location)).filter(
        Asset.property_id == property_id,
        Asset.next_maintenance_date.isnot(None),
        Asset.next_maintenance_date >= today,
        Asset.next_maintenance_date <= horizon
    ).order_by(Asset.next_maintenance_date).all()

    recent = db.query(MaintenanceOrder).options(
        joinedload(MaintenanceOrder.asset),
        joinedload(MaintenanceOrder.location)
    ).filter(
        MaintenanceOrder.property_id == property_id
    ).order_by(MaintenanceOrder.created_at.desc(), MaintenanceOrder.id.desc()).limit(RECENT_LIMIT).all()

    return {
        "location_count": location_count,
        "asset_count": asset_count,
        "maintenance_count": maintenance_stats.total or 0,
        "open_maintenance_count": int(maintenance_stats.open or 0),
        "awaiting_approval_count": int(maintenance_stats.awaiting_approval or 0),
        "upcoming_maintenance": upcoming,
        "recent_maintenance": recent,
    }
