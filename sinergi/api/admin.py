"""
Admin API endpoints - privileged user management.

create-user and delete-user keep an RPC-style contract: every outcome is a
JSON body with either ``success`` or ``error``, and the caller's role is read
from ``user_roles`` on each call.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from sinergi.database import get_db
from sinergi.models import User
from sinergi.permissions import can_manage_users_and_properties
from sinergi.schemas import CreateUserRequest, DeleteUserRequest
from sinergi.services import policy, users
from sinergi.services.dependency import SessionContext, security, require_superadmin
from sinergi.services.users import UserAdminError
from sinergi.utils.security import verify_token

router = APIRouter()
logger = logging.getLogger(__name__)


class PropertyAssignmentUpdate(BaseModel):
    property_ids: List[int] = []


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "body"
    return f"{field}: {first.get('msg', 'invalid value')}"


def _authorize_superadmin(credentials: Optional[HTTPAuthorizationCredentials], db: Session, action: str):
    """Return (user, None) for a superadmin caller, else (None, error response)"""
    if credentials is None:
        return None, error_response(401, "Unauthorized")

    email = verify_token(credentials.credentials)
    user = db.query(User).filter(User.email == email.lower()).first() if email else None
    if not user or not user.is_active:
        return None, error_response(401, "Unauthorized")

    if not can_manage_users_and_properties(policy.get_user_role(db, user.id)):
        logger.warning(f"{user.email} tried to {action} without superadmin role")
        return None, error_response(403, f"Only superadmin can {action}")

    return user, None


async def _read_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/admin/create-user")
async def create_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    caller, denied = _authorize_superadmin(credentials, db, "create users")
    if denied:
        return denied

    body = await _read_body(request)
    if not isinstance(body, dict):
        return error_response(400, "Invalid JSON body")

    try:
        data = CreateUserRequest.model_validate(body)
    except ValidationError as e:
        return error_response(400, _validation_message(e))

    try:
        user = users.create_user(db, data)
    except UserAdminError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error creating user {data.email}: {e}")
        return error_response(400, str(e))

    logger.info(f"User {user.email} created by {caller.email}")
    return {"success": True, "message": "User created successfully", "userId": user.id}


@router.post("/admin/delete-user")
async def delete_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    caller, denied = _authorize_superadmin(credentials, db, "delete users")
    if denied:
        return denied

    body = await _read_body(request)
    if not isinstance(body, dict) or body.get("user_id") in (None, ""):
        return error_response(400, "user_id is required")

    try:
        data = DeleteUserRequest.model_validate(body)
    except ValidationError:
        return error_response(400, "user_id is required")

    if data.user_id == caller.id:
        return error_response(400, "You cannot delete your own account")

    try:
        users.delete_user(db, data.user_id)
    except UserAdminError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error deleting user {data.user_id}: {e}")
        return error_response(400, str(e))

    logger.info(f"User {data.user_id} deleted by {caller.email}")
    return {"success": True}


@router.get("/admin/users")
async def get_users(
    ctx: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """All users with role and assigned property ids"""
    return users.list_users(db)


@router.put("/admin/users/{user_id}/properties")
async def update_user_properties(
    user_id: int,
    data: PropertyAssignmentUpdate,
    ctx: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Replace the properties assigned to a user"""
    try:
        property_ids = users.set_property_assignments(db, user_id, data.property_ids)
    except UserAdminError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating property assignments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating property assignments: {str(e)}"
        )

    logger.info(f"Property assignments for user {user_id} updated by {ctx.email}")
    return {"success": True, "user_id": user_id, "property_ids": property_ids}
