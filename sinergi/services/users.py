"""
Privileged user administration.

Creating a user writes four tables (auth record, profile, role, property
assignments) in one transaction. Callers must already have confirmed the
actor is a superadmin.
"""
import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from sinergi.constants import SUPERADMIN
from sinergi.models import User, Profile, UserRole, PropertyAssignment, Property
from sinergi.schemas import CreateUserRequest
from sinergi.utils.security import get_password_hash

logger = logging.getLogger(__name__)


class UserAdminError(Exception):
    pass


def _unique_property_ids(db: Session, property_ids: Iterable[int]) -> List[int]:
    ids = list(dict.fromkeys(property_ids or []))
    if not ids:
        return []
    found = {p.id for p in db.query(Property.id).filter(Property.id.in_(ids)).all()}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise UserAdminError(f"Property not found: {', '.join(str(m) for m in missing)}")
    return ids


def create_user(db: Session, data: CreateUserRequest) -> User:
    email = data.email.lower()

    if db.query(User).filter(User.email == email).first():
        raise UserAdminError("A user with this email address has already been registered")

    property_ids = [] if data.role == SUPERADMIN else _unique_property_ids(db, data.property_ids)

    try:
        user = User(email=email, hashed_password=get_password_hash(data.login_code), is_active=True)
        db.add(user)
        db.flush()

        db.add(Profile(user_id=user.id, email=email, full_name=data.full_name, login_code=data.login_code))
        db.add(UserRole(user_id=user.id, role=data.role))
        for pid in property_ids:
            db.add(PropertyAssignment(user_id=user.id, property_id=pid))

        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        raise

    logger.info(f"User {email} created with role {data.role} ({len(property_ids)} properties)")
    return user


def delete_user(db: Session, user_id: int) -> None:
    """Remove the user and every app row keyed on them so the email can be reused"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserAdminError("User not found")

    email = user.email
    try:
        db.query(PropertyAssignment).filter(PropertyAssignment.user_id == user_id).delete(synchronize_session=False)
        db.query(UserRole).filter(UserRole.user_id == user_id).delete(synchronize_session=False)
        db.query(Profile).filter(Profile.user_id == user_id).delete(synchronize_session=False)
        db.expire(user)
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"User {email} deleted")


def set_property_assignments(db: Session, user_id: int, property_ids: Iterable[int]) -> List[int]:
    """Replace a user's property assignments with ``property_ids``"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserAdminError("User not found")

    ids = _unique_property_ids(db, property_ids)
    try:
        db.query(PropertyAssignment).filter(PropertyAssignment.user_id == user_id).delete(synchronize_session=False)
        for pid in ids:
            db.add(PropertyAssignment(user_id=user_id, property_id=pid))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Property assignments for {user.email} set to {ids}")
    return ids


def create_first_superadmin(db: Session, email: str, login_code: str, full_name: str) -> User:
    """Bootstrap the initial superadmin. Refused once any superadmin exists."""
    if db.query(UserRole).filter(UserRole.role == SUPERADMIN).first():
        raise UserAdminError("A superadmin already exists")
    data = CreateUserRequest(email=email, login_code=login_code, full_name=full_name, role=SUPERADMIN)
    return create_user(db, data)


def list_users(db: Session) -> List[dict]:
    users = db.query(User).order_by(User.email).all()
    result = []
    for user in users:
        result.append({
            "id": user.id,
            "email": user.email,
            "full_name": user.profile.full_name if user.profile else None,
            "role": user.role_entry.role if user.role_entry else None,
            "is_active": user.is_active,
            "property_ids": sorted(a.property_id for a in user.assignments),
            "created_at": user.created_at.isoformat() if user.created_at else None,
        })
    return result
