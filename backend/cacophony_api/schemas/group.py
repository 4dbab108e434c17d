"""
Cacophony API - Group Pydantic Schemas
"""
from typing import List, Union

from pydantic import field_validator

from cacophony_api.schemas.common import APIModel, check_new_name
from cacophony_api.schemas.user import UserSummary


class GroupCreate(APIModel):
    groupname: str

    @field_validator("groupname")
    @classmethod
    def validate_groupname(cls, v: str) -> str:
        return check_new_name(v)


class GroupMemberAdd(APIModel):
    """Add (or update) a user's membership; ``group`` is a name or an id."""
    group: Union[int, str]
    username: str
    admin: bool = False


class GroupMemberRemove(APIModel):
    group: Union[int, str]
    username: str


class GroupDevice(APIModel):
    id: int
    devicename: str


class GroupMember(APIModel):
    """A group member with their admin flag."""
    id: int
    username: str
    is_admin: bool


class GroupResponse(APIModel):
    """
    A group as seen by the caller.

    ``users`` holds the members matched by the visibility filter (only the
    caller, unless they have global read); ``group_users`` lists every
    member with their admin flag.
    """
    id: int
    groupname: str
    users: List[UserSummary] = []
    devices: List[GroupDevice] = []
    group_users: List[GroupMember] = []
