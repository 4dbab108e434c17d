"""
Cacophony API - Device Service

Registration, re-registration, device user management and the
access-filtered device queries.
"""
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.errors import AuthorizationError, ClientError, ConflictError, NotFoundError
from cacophony_api.models.device import Device, DeviceUsers
from cacophony_api.models.group import Group, GroupUsers
from cacophony_api.models.user import User
from cacophony_api.schemas.common import Page
from cacophony_api.schemas.device import (
    AccessRelation,
    DeviceAccessUser,
    DeviceMatch,
    DeviceQueryItem,
    DeviceQueryResult,
    DeviceResponse,
    DeviceUser,
)
from cacophony_api.services.auth import AuthService
from cacophony_api.services.permissions import (
    DeviceCapabilities,
    UserAccess,
    can_see_device,
    combine,
    device_capabilities,
    device_visibility_clause,
)

logger = logging.getLogger(__name__)

OPERATOR_AND = "and"
OPERATOR_OR = "or"


# ============================================================
# Lookups
# ============================================================

async def get_device(db: AsyncSession, device_id: int) -> Optional[Device]:
    result = await db.execute(select(Device).where(Device.id == device_id))
    return result.scalar_one_or_none()


async def get_visible_device(db: AsyncSession, access: UserAccess, device_id: int) -> Device:
    """A device the user can see; NotFoundError otherwise."""
    device = await get_device(db, device_id)
    if device is None or not await can_see_device(db, access, device):
        raise NotFoundError(f"Could not find a device with an id of '{device_id}'")
    return device


async def free_devicename(db: AsyncSession, devicename: str, exclude_id: Optional[int] = None) -> bool:
    """True if no device (other than ``exclude_id``) holds the name."""
    query = select(Device.id).where(Device.devicename == devicename)
    if exclude_id is not None:
        query = query.where(Device.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is None


async def user_permissions(db: AsyncSession, access: UserAccess, device: Device) -> DeviceCapabilities:
    return await device_capabilities(db, access, device)


# ============================================================
# Registration
# ============================================================

async def register_device(db: AsyncSession, devicename: str, password: str, group: Group) -> Device:
    """
    Create a device in ``group``.

    Name check, insert and credential are one transaction: the device is
    never visible without its hashed password.
    """
    if not await free_devicename(db, devicename):
        raise ConflictError("Device name in use.")

    device = Device(
        devicename=devicename,
        hashed_password=AuthService.get_password_hash(password),
        group=group
    )
    db.add(device)
    await db.commit()

    logger.info(f"Registered device '{devicename}' (id={device.id}) in group '{group.groupname}'")
    return device


async def reregister(
    db: AsyncSession,
    device: Device,
    new_name: str,
    new_group: Group,
    new_password: str
) -> Device:
    """
    Change a device's name, group and credential in place.

    The id stays the same, so anything that must follow the device across
    re-registrations has to refer to it by id, not by name.
    """
    if not await free_devicename(db, new_name, exclude_id=device.id):
        raise ConflictError("Device name in use.")

    old_name = device.devicename
    device.devicename = new_name
    device.group = new_group
    device.hashed_password = AuthService.get_password_hash(new_password)
    await db.commit()

    logger.info(f"Re-registered device {device.id}: '{old_name}' -> '{new_name}' in '{new_group.groupname}'")
    return device


# ============================================================
# Device users
# ============================================================

async def device_users(db: AsyncSession, access: UserAccess, device: Device) -> List[DeviceAccessUser]:
    """Users with access to the device, directly or through its group."""
    if not (await user_permissions(db, access, device)).can_list_users:
        raise AuthorizationError("User is not a device or group admin so cannot list device users")

    direct = await db.execute(
        select(User.id, User.username, User.email, DeviceUsers.admin)
        .join(DeviceUsers, DeviceUsers.user_id == User.id)
        .where(DeviceUsers.device_id == device.id)
        .order_by(User.username)
    )
    through_group = await db.execute(
        select(User.id, User.username, User.email, GroupUsers.admin)
        .join(GroupUsers, GroupUsers.user_id == User.id)
        .where(GroupUsers.group_id == device.group_id)
        .order_by(User.username)
    )

    users = [
        DeviceAccessUser(id=uid, username=name, email=email, relation=AccessRelation.DEVICE, admin=admin)
        for uid, name, email, admin in direct.all()
    ]
    users.extend(
        DeviceAccessUser(id=uid, username=name, email=email, relation=AccessRelation.GROUP, admin=admin)
        for uid, name, email, admin in through_group.all()
    )
    return users


async def add_user_to_device(
    db: AsyncSession,
    access: UserAccess,
    device: Device,
    user_to_add: User,
    admin: bool
) -> None:
    if not (await user_permissions(db, access, device)).can_add_users:
        logger.warning(f"'{access.username}' tried to add users to device {device.id} without admin rights")
        raise AuthorizationError("User is not a device or group admin so cannot add users")

    association = await db.get(DeviceUsers, (device.id, user_to_add.id))
    if association is not None:
        association.admin = admin
    else:
        db.add(DeviceUsers(device_id=device.id, user_id=user_to_add.id, admin=admin))
    await db.commit()

    logger.info(f"'{user_to_add.username}' added to device '{device.devicename}' (admin={admin})")


async def remove_user_from_device(
    db: AsyncSession,
    access: UserAccess,
    device: Device,
    user_to_remove: User
) -> bool:
    """Remove a user's direct access; False if they had none."""
    if not (await user_permissions(db, access, device)).can_remove_users:
        logger.warning(f"'{access.username}' tried to remove users from device {device.id} without admin rights")
        raise AuthorizationError("User is not a device or group admin so cannot remove users")

    association = await db.get(DeviceUsers, (device.id, user_to_remove.id))
    if association is None:
        return False
    await db.delete(association)
    await db.commit()

    logger.info(f"'{user_to_remove.username}' removed from device '{device.devicename}'")
    return True


# ============================================================
# Access-filtered queries
# ============================================================

async def all_for_user(db: AsyncSession, access: UserAccess) -> Page[DeviceResponse]:
    """Devices the user can see, with their directly associated users."""
    clauses = combine(device_visibility_clause(access, Device.id))
    result = await db.execute(select(Device).where(*clauses).order_by(Device.id))
    devices = list(result.scalars().all())

    users = await _direct_users_by_device(db, [d.id for d in devices])
    rows = [
        DeviceResponse(
            id=device.id,
            devicename=device.devicename,
            group_id=device.group_id,
            groupname=device.group.groupname,
            users=users.get(device.id, [])
        )
        for device in devices
    ]
    return Page[DeviceResponse](count=len(rows), rows=rows)


async def _direct_users_by_device(db: AsyncSession, device_ids: Sequence[int]) -> Dict[int, List[DeviceUser]]:
    if not device_ids:
        return {}
    result = await db.execute(
        select(DeviceUsers.device_id, DeviceUsers.admin, User.id, User.username)
        .join(User, User.id == DeviceUsers.user_id)
        .where(DeviceUsers.device_id.in_(device_ids))
        .order_by(User.username)
    )
    users: Dict[int, List[DeviceUser]] = {}
    for device_id, admin, user_id, username in result.all():
        users.setdefault(device_id, []).append(DeviceUser(id=user_id, username=username, admin=admin))
    return users


async def query_devices(
    db: AsyncSession,
    access: UserAccess,
    devices: Optional[Sequence[DeviceQueryItem]] = None,
    groups: Optional[Sequence[str]] = None,
    operator: str = OPERATOR_OR
) -> DeviceQueryResult:
    """
    Find visible devices by (devicename, groupname) pairs and/or group names.

    Each pair and the group list form one condition; ``operator`` says
    whether all or any of them must hold. ``name_matches`` lists visible
    devices with a requested name that did not fully match, which helps
    callers spot a device that has moved group.
    """
    conditions = []
    for item in devices or []:
        conditions.append(and_(Device.devicename == item.devicename, Group.groupname == item.groupname))
    if groups:
        conditions.append(Group.groupname.in_(list(groups)))
    if not conditions:
        raise ClientError("At least one of devices or groups is required", status_code=422)

    combined = and_(*conditions) if operator.lower() == OPERATOR_AND else or_(*conditions)
    visible = combine(device_visibility_clause(access, Device.id))
    base = (
        select(Device.id, Device.devicename, Group.groupname)
        .join(Group, Device.group_id == Group.id)
        .where(*visible)
        .order_by(Device.id)
    )

    result = await db.execute(base.where(combined))
    matches = [DeviceMatch(id=i, devicename=d, groupname=g) for i, d, g in result.all()]

    name_matches: List[DeviceMatch] = []
    if devices:
        matched_ids = {m.id for m in matches}
        names = list({item.devicename for item in devices})
        result = await db.execute(base.where(Device.devicename.in_(names)))
        name_matches = [
            DeviceMatch(id=i, devicename=d, groupname=g)
            for i, d, g in result.all()
            if i not in matched_ids
        ]

    return DeviceQueryResult(devices=matches, name_matches=name_matches)
