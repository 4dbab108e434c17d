"""
Cacophony API - Authentication Service
JWT authentication for users and devices, and the request dependencies
that resolve the calling principal
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cacophony_api.config import get_settings
from cacophony_api.database import get_db
from cacophony_api.errors import AuthenticationError, AuthorizationError
from cacophony_api.models.device import Device
from cacophony_api.models.group import Group
from cacophony_api.models.user import User, GlobalPermission
from cacophony_api.services.permissions import UserAccess

logger = logging.getLogger(__name__)

settings = get_settings()

USER = "user"
DEVICE = "device"

# Token schemes accepted in the Authorization header
TOKEN_SCHEMES = ("jwt", "bearer")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


@dataclass
class Principal:
    """The authenticated caller: a user or a device."""
    type: str
    user: Optional[User] = None
    device: Optional[Device] = None


class AuthService:
    """Service for handling authentication operations."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token; no ``exp`` claim when expires_delta is None."""
        to_encode = data.copy()
        if expires_delta is not None:
            to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
        return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def create_entity_token(entity: Union[User, Device]) -> str:
        """Token identifying a user or device, as handed out at login/registration."""
        if isinstance(entity, Device):
            minutes = settings.device_token_expire_minutes
            entity_type = DEVICE
        else:
            minutes = settings.access_token_expire_minutes
            entity_type = USER
        expires = timedelta(minutes=minutes) if minutes else None
        return AuthService.create_access_token({"_type": entity_type, "id": entity.id}, expires)

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate a token, None if it is invalid or expired."""
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError:
            return None

    @staticmethod
    async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[User]:
        """Authenticate user by username (or email) and password."""
        result = await db.execute(
            select(User).where((User.username == username) | (User.email == username))
        )
        user = result.scalars().first()

        if not user:
            logger.warning(f"Login attempt for non-existent user: {username}")
            return None

        if not AuthService.verify_password(password, user.hashed_password):
            logger.warning(f"Invalid password for user: {username}")
            return None

        logger.info(f"User authenticated successfully: {username}")
        return user

    @staticmethod
    async def authenticate_device(
        db: AsyncSession,
        devicename: str,
        password: str,
        groupname: Optional[str] = None
    ) -> Optional[Device]:
        """Authenticate a device by name (optionally within a group)."""
        query = select(Device).where(Device.devicename == devicename)
        if groupname:
            query = query.join(Group, Device.group_id == Group.id).where(Group.groupname == groupname)
        result = await db.execute(query)
        device = result.scalars().first()

        if not device or not AuthService.verify_password(password, device.hashed_password):
            logger.warning(f"Failed device login: {devicename}")
            return None
        return device

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_name(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_device_by_id(db: AsyncSession, device_id: int) -> Optional[Device]:
        result = await db.execute(select(Device).where(Device.id == device_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_user(
        db: AsyncSession,
        username: str,
        password: str,
        email: Optional[str] = None,
        global_permission: GlobalPermission = GlobalPermission.OFF
    ) -> User:
        """Create a new user."""
        user = User(
            username=username,
            hashed_password=AuthService.get_password_hash(password),
            email=email,
            global_permission=global_permission
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Created new user: {username} with global permission: {global_permission.value}")
        return user


def parse_authorization(header: Optional[str]) -> Optional[str]:
    """Pull the token out of ``JWT <token>`` (or ``Bearer <token>``)."""
    if not header:
        return None
    parts = header.split(None, 1)
    if len(parts) == 2 and parts[0].lower() in TOKEN_SCHEMES:
        return parts[1].strip()
    return None


# Dependency functions for FastAPI
async def get_current_principal(
    authorization: Optional[str] = Depends(authorization_header),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Resolve the user or device the request's token identifies."""
    token = parse_authorization(authorization)
    if not token:
        raise AuthenticationError("Missing or malformed Authorization header")

    payload = AuthService.decode_token(token)
    if not payload or "id" not in payload:
        raise AuthenticationError("Invalid or expired token")

    entity_type = payload.get("_type")
    if entity_type == USER:
        user = await AuthService.get_user_by_id(db, int(payload["id"]))
        if user:
            return Principal(type=USER, user=user)
    elif entity_type == DEVICE:
        device = await AuthService.get_device_by_id(db, int(payload["id"]))
        if device:
            return Principal(type=DEVICE, device=device)

    raise AuthenticationError("Could not find the entity for this token")


async def get_current_user_required(
    principal: Principal = Depends(get_current_principal)
) -> User:
    if principal.type != USER:
        raise AuthenticationError("A user token is required")
    return principal.user


async def get_current_device_required(
    principal: Principal = Depends(get_current_principal)
) -> Device:
    if principal.type != DEVICE:
        raise AuthenticationError("A device token is required")
    return principal.device


async def get_current_access(
    current_user: User = Depends(get_current_user_required)
) -> UserAccess:
    """The caller's permissions, resolved once for the whole request."""
    return UserAccess.from_user(current_user)


async def require_global_write(
    access: UserAccess = Depends(get_current_access)
) -> UserAccess:
    if not access.has_global_write:
        raise AuthorizationError("Global write permission required")
    return access


async def create_default_admin(db: AsyncSession) -> None:
    """Create a global-write admin if no users exist and a password is configured."""
    if not settings.default_admin_password:
        return

    result = await db.execute(select(User).limit(1))
    if result.scalar_one_or_none():
        logger.info("Users already exist, skipping default admin creation")
        return

    await AuthService.create_user(
        db,
        username=settings.default_admin_username,
        password=settings.default_admin_password,
        global_permission=GlobalPermission.WRITE
    )
    logger.info(f"🔐 Created default admin user '{settings.default_admin_username}'")
