"""
Row-level access policy.

These checks read roles and property assignments straight from the
database. They are the authorization boundary: nothing here trusts a role
claimed by the client or carried in a token.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from sinergi.constants import SUPERADMIN
from sinergi.models import Property, PropertyAssignment, UserRole


def get_user_role(db: Session, user_id: int) -> Optional[str]:
    entry = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    return entry.role if entry else None


def has_role(db: Session, user_id: int, role: str) -> bool:
    return get_user_role(db, user_id) == role


def has_property_access(db: Session, user_id: int, property_id: int) -> bool:
    """Superadmins reach every property; everyone else only their assignments"""
    if has_role(db, user_id, SUPERADMIN):
        return True
    assignment = db.query(PropertyAssignment).filter(
        PropertyAssignment.user_id == user_id,
        PropertyAssignment.property_id == property_id
    ).first()
    return assignment is not None


def visible_properties(db: Session, user_id: int) -> List[Property]:
    if has_role(db, user_id, SUPERADMIN):
        return db.query(Property).order_by(Property.name).all()
    return (
        db.query(Property)
        .join(PropertyAssignment, PropertyAssignment.property_id == Property.id)
        .filter(PropertyAssignment.user_id == user_id)
        .order_by(Property.name)
        .all()
    )
