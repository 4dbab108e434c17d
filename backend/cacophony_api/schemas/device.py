"""
Cacophony API - Device Pydantic Schemas
"""
import enum
from typing import List, Optional

from pydantic import Field, field_validator

from cacophony_api.schemas.common import APIModel, MIN_PASSWORD_LENGTH, check_new_name


class DeviceRegister(APIModel):
    """Register a new device into an existing group (by name)."""
    devicename: str
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    group: str

    @field_validator("devicename")
    @classmethod
    def validate_devicename(cls, v: str) -> str:
        return check_new_name(v)


class DeviceReregister(APIModel):
    new_name: str
    new_group: str
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator("new_name")
    @classmethod
    def validate_new_name(cls, v: str) -> str:
        return check_new_name(v)


class DeviceLogin(APIModel):
    devicename: str
    password: str
    groupname: Optional[str] = None


class DeviceUserAdd(APIModel):
    device_id: int
    username: str
    admin: bool = False


class DeviceUserRemove(APIModel):
    device_id: int
    username: str


class DeviceUser(APIModel):
    """A user directly associated with a device."""
    id: int
    username: str
    admin: bool


class DeviceResponse(APIModel):
    id: int
    devicename: str
    group_id: int
    groupname: str
    users: List[DeviceUser] = []


class AccessRelation(str, enum.Enum):
    DEVICE = "device"
    GROUP = "group"


class DeviceAccessUser(APIModel):
    """A user with access to a device, and through which association."""
    id: int
    username: str
    email: Optional[str] = None
    relation: AccessRelation
    admin: bool


class DeviceQueryItem(APIModel):
    devicename: str
    groupname: str


class DeviceMatch(APIModel):
    id: int
    devicename: str
    groupname: str


class DeviceQueryResult(APIModel):
    devices: List[DeviceMatch] = []
    name_matches: List[DeviceMatch] = []
