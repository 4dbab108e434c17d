"""
Cacophony API - User Pydantic Schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from cacophony_api.models.user import GlobalPermission
from cacophony_api.schemas.common import APIModel, MIN_PASSWORD_LENGTH, check_new_name


class UserCreate(APIModel):
    """Schema for registering a new user."""
    username: str
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    email: Optional[EmailStr] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_new_name(v)


class UserLogin(APIModel):
    """Username (or email) and password."""
    username: str
    password: str


class UserResponse(APIModel):
    """User response without sensitive data."""
    id: int
    username: str
    email: Optional[str] = None
    global_permission: GlobalPermission
    created_at: Optional[datetime] = None


class UserSummary(APIModel):
    id: int
    username: str


class GlobalPermissionUpdate(APIModel):
    permission: GlobalPermission
