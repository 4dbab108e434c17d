"""
Cacophony API - Authentication Router
Token issuing for users and devices
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.errors import AuthenticationError
from cacophony_api.responses import send
from cacophony_api.schemas.device import DeviceLogin
from cacophony_api.schemas.user import UserLogin, UserResponse
from cacophony_api.services.auth import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["authentication"])


@router.post("/authenticate_user")
async def authenticate_user(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate a user and return a JWT.

    ``username`` may also be the user's email address.
    """
    user = await AuthService.authenticate_user(db, credentials.username, credentials.password)
    if not user:
        raise AuthenticationError("Wrong username or password.")

    return send(
        200,
        ["Successful login."],
        token="JWT " + AuthService.create_entity_token(user),
        userData=UserResponse.model_validate(user)
    )


@router.post("/authenticate_device")
async def authenticate_device(
    credentials: DeviceLogin,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate a device by name (and optionally group) and password."""
    device = await AuthService.authenticate_device(
        db, credentials.devicename, credentials.password, credentials.groupname
    )
    if not device:
        raise AuthenticationError("Wrong devicename or password.")

    return send(
        200,
        ["Successful login."],
        id=device.id,
        token="JWT " + AuthService.create_entity_token(device)
    )
