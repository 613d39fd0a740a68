from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from sinergi.config import settings
from sinergi.database import get_db
from sinergi.models import User, Profile
from sinergi.permissions import permission_matrix
from sinergi.schemas import LoginRequest, Token
from sinergi.services import policy
from sinergi.services.dependency import SessionContext, get_session_context
from sinergi.utils.rate_limiter import limiter, RateLimits
from sinergi.utils.security import create_access_token, verify_password

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=Token)
@limiter.limit(RateLimits.LOGIN)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """Sign in with email and login code"""
    email = credentials.email.lower()

    profile = db.query(Profile).filter(Profile.email == email).first()
    if not profile:
        logger.warning(f"Login attempt for unknown email {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email tidak ditemukan",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if profile.login_code != credentials.login_code:
        logger.warning(f"Wrong login code for {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Kode login salah",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == profile.user_id).first()
    if not user or not user.is_active or not verify_password(credentials.login_code, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Kode login salah",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": user.email},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )
    logger.info(f"User {user.email} signed in")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {
            "id": user.id,
            "email": user.email,
            "full_name": profile.full_name,
            "role": policy.get_user_role(db, user.id),
        }
    }


@router.get("/me")
async def read_current_user(ctx: SessionContext = Depends(get_session_context)):
    """Current user with role and the properties they can select"""
    return {
        "id": ctx.id,
        "email": ctx.email,
        "full_name": ctx.full_name,
        "role": ctx.role,
        "properties": [
            {"id": p.id, "name": p.name, "address": p.address}
            for p in ctx.visible_properties()
        ],
    }


@router.get("/permissions")
async def read_permissions(ctx: SessionContext = Depends(get_session_context)):
    return {"role": ctx.role, "permissions": permission_matrix(ctx.role)}
