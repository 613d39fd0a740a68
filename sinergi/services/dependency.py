from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from sinergi.database import get_db
from sinergi.models import User, Property
from sinergi.permissions import can_manage_users_and_properties
from sinergi.services import policy
from sinergi.utils.security import verify_token

security = HTTPBearer(auto_error=False)


@dataclass
class SessionContext:
    """Per-request view of the signed-in user.

    Built by ``get_session_context`` for every request and discarded when it
    ends. The role is read from ``user_roles`` at build time, never taken
    from the token.
    """
    user: User
    role: Optional[str]
    db: Session = field(repr=False)

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def full_name(self) -> Optional[str]:
        return self.user.profile.full_name if self.user.profile else None

    def can_access_property(self, property_id: int) -> bool:
        return policy.has_property_access(self.db, self.user.id, property_id)

    def visible_properties(self) -> List[Property]:
        return policy.visible_properties(self.db, self.user.id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Get the current authenticated user"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = verify_token(credentials.credentials)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


def get_session_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SessionContext:
    return SessionContext(user=user, role=policy.get_user_role(db, user.id), db=db)


def require_superadmin(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not can_manage_users_and_properties(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")
    return ctx


def get_accessible_property(db: Session, ctx: SessionContext, property_id: int) -> Property:
    """Load a property the caller may see, or raise 404/403"""
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if not ctx.can_access_property(prop.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No access to this property")
    return prop
