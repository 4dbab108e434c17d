"""
Cacophony API - Permission Resolver

Works out what a user may see and do from their global permission and the
GroupUsers / DeviceUsers association rows. Nothing here is cached: every
call re-reads the association state.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from cacophony_api.models.device import Device, DeviceUsers
from cacophony_api.models.group import GroupUsers
from cacophony_api.models.user import User, GlobalPermission


@dataclass(frozen=True)
class UserAccess:
    """
    The requesting user's identity and global permission.

    Built once per request from the authenticated user and passed down to
    the services, so they never consult a mutable ``User`` row for flags.
    """
    user_id: int
    username: str
    global_permission: GlobalPermission = GlobalPermission.OFF

    @classmethod
    def from_user(cls, user: User) -> "UserAccess":
        return cls(
            user_id=user.id,
            username=user.username,
            global_permission=user.global_permission or GlobalPermission.OFF
        )

    @property
    def has_global_read(self) -> bool:
        return self.global_permission in (GlobalPermission.READ, GlobalPermission.WRITE)

    @property
    def has_global_write(self) -> bool:
        return self.global_permission == GlobalPermission.WRITE


class Membership(enum.Enum):
    """A user's standing with a single group or device."""
    NO_ACCESS = "no_access"
    MEMBER = "member"
    ADMIN = "admin"

    @classmethod
    def from_admin_flag(cls, admin: Optional[bool]) -> "Membership":
        """Map an association row's ``admin`` value (None = no row)."""
        if admin is None:
            return cls.NO_ACCESS
        return cls.ADMIN if admin else cls.MEMBER

    @property
    def is_admin(self) -> bool:
        return self is Membership.ADMIN

    @property
    def has_access(self) -> bool:
        return self is not Membership.NO_ACCESS


@dataclass(frozen=True)
class GroupCapabilities:
    can_add_users: bool = False
    can_remove_users: bool = False
    can_add_stations: bool = False

    @classmethod
    def granted(cls, enabled: bool) -> "GroupCapabilities":
        return cls(
            can_add_users=enabled,
            can_remove_users=enabled,
            can_add_stations=enabled
        )


@dataclass(frozen=True)
class DeviceCapabilities:
    can_list_users: bool = False
    can_add_users: bool = False
    can_remove_users: bool = False

    @classmethod
    def granted(cls, enabled: bool) -> "DeviceCapabilities":
        return cls(
            can_list_users=enabled,
            can_add_users=enabled,
            can_remove_users=enabled
        )


# ============================================================
# Membership lookups
# ============================================================

async def group_membership(db: AsyncSession, group_id: int, user_id: int) -> Membership:
    result = await db.execute(
        select(GroupUsers.admin).where(
            GroupUsers.group_id == group_id,
            GroupUsers.user_id == user_id
        )
    )
    return Membership.from_admin_flag(result.scalar_one_or_none())


async def device_membership(db: AsyncSession, device_id: int, user_id: int) -> Membership:
    result = await db.execute(
        select(DeviceUsers.admin).where(
            DeviceUsers.device_id == device_id,
            DeviceUsers.user_id == user_id
        )
    )
    return Membership.from_admin_flag(result.scalar_one_or_none())


# ============================================================
# Capabilities
# ============================================================

async def group_capabilities(db: AsyncSession, access: UserAccess, group_id: int) -> GroupCapabilities:
    """Global write grants everything; otherwise only group admins may manage."""
    if access.has_global_write:
        return GroupCapabilities.granted(True)
    membership = await group_membership(db, group_id, access.user_id)
    return GroupCapabilities.granted(membership.is_admin)


async def device_capabilities(db: AsyncSession, access: UserAccess, device: Device) -> DeviceCapabilities:
    """
    Device admins and admins of the device's group may manage its users.
    """
    if access.has_global_write:
        return DeviceCapabilities.granted(True)
    if (await device_membership(db, device.id, access.user_id)).is_admin:
        return DeviceCapabilities.granted(True)
    membership = await group_membership(db, device.group_id, access.user_id)
    return DeviceCapabilities.granted(membership.is_admin)


# ============================================================
# Visibility predicates
# ============================================================

def visible_group_ids(user_id: int):
    """Subquery of the ids of groups the user is a member of."""
    return select(GroupUsers.group_id).where(GroupUsers.user_id == user_id)


def devices_of_visible_groups(user_id: int):
    return select(Device.id).where(Device.group_id.in_(visible_group_ids(user_id)))


def directly_visible_device_ids(user_id: int):
    return select(DeviceUsers.device_id).where(DeviceUsers.user_id == user_id)


def device_visibility_clause(access: UserAccess, device_id_column) -> Optional[ColumnElement]:
    """
    Predicate restricting ``device_id_column`` to devices the user can see.

    Returns None for users with global read, meaning "no restriction".
    """
    if access.has_global_read:
        return None
    return or_(
        device_id_column.in_(devices_of_visible_groups(access.user_id)),
        device_id_column.in_(directly_visible_device_ids(access.user_id))
    )


def group_visibility_clause(access: UserAccess, group_id_column) -> Optional[ColumnElement]:
    if access.has_global_read:
        return None
    return group_id_column.in_(visible_group_ids(access.user_id))


async def can_see_device(db: AsyncSession, access: UserAccess, device: Device) -> bool:
    if access.has_global_read:
        return True
    if (await device_membership(db, device.id, access.user_id)).has_access:
        return True
    return (await group_membership(db, device.group_id, access.user_id)).has_access


async def can_see_group(db: AsyncSession, access: UserAccess, group_id: int) -> bool:
    if access.has_global_read:
        return True
    return (await group_membership(db, group_id, access.user_id)).has_access


def combine(*clauses: Optional[ColumnElement]) -> list:
    """Drop the ``None`` (unrestricted) clauses so the rest can be AND-ed."""
    return [clause for clause in clauses if clause is not None]
