"""
Cacophony API - Users Router
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.errors import ConflictError, NotFoundError
from cacophony_api.models.user import User
from cacophony_api.responses import send
from cacophony_api.schemas.user import GlobalPermissionUpdate, UserCreate, UserResponse
from cacophony_api.services.auth import AuthService, get_current_user_required, require_global_write
from cacophony_api.services.permissions import UserAccess

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.post("")
async def register_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user and log them straight in."""
    if await AuthService.get_user_by_name(db, user_data.username):
        raise ConflictError("Username in use.")
    if user_data.email:
        result = await db.execute(select(User.id).where(User.email == user_data.email))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Email in use.")

    user = await AuthService.create_user(
        db,
        username=user_data.username,
        password=user_data.password,
        email=user_data.email
    )
    return send(
        200,
        ["Created new user."],
        token="JWT " + AuthService.create_entity_token(user),
        userData=UserResponse.model_validate(user)
    )


@router.get("/{username}")
async def get_user(
    username: str,
    current_user: User = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db)
):
    user = await AuthService.get_user_by_name(db, username)
    if not user:
        raise NotFoundError(f"Could not find a user with the name of '{username}'")
    return send(200, [], userData=UserResponse.model_validate(user))


@router.patch("/{username}/global-permission")
async def update_global_permission(
    username: str,
    update: GlobalPermissionUpdate,
    admin: UserAccess = Depends(require_global_write),
    db: AsyncSession = Depends(get_db)
):
    """Set a user's global permission (global write holders only)."""
    user = await AuthService.get_user_by_name(db, username)
    if not user:
        raise NotFoundError(f"Could not find a user with the name of '{username}'")

    user.global_permission = update.permission
    await db.commit()

    logger.info(f"'{admin.username}' set global permission of '{username}' to {update.permission.value}")
    return send(
        200,
        [f"Global permission of {username} is now {update.permission.value}."],
        userData=UserResponse.model_validate(user)
    )
