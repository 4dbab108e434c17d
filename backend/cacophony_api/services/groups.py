"""
Cacophony API - Group Service

Group lookups, membership management, the access-filtered group query and
bulk station import.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import utcnow
from cacophony_api.errors import AuthorizationError, ConflictError, NotFoundError
from cacophony_api.models.device import Device
from cacophony_api.models.group import Group, GroupUsers
from cacophony_api.models.station import Station
from cacophony_api.models.user import User
from cacophony_api.schemas.common import Page
from cacophony_api.schemas.group import GroupDevice, GroupMember, GroupResponse
from cacophony_api.schemas.station import StationIn, StationImportResult
from cacophony_api.schemas.user import UserSummary
from cacophony_api.services.permissions import (
    GroupCapabilities,
    UserAccess,
    combine,
    group_capabilities,
    group_visibility_clause,
)
from cacophony_api.services.stations import get_stations, reconcile_stations, rematch_recordings

logger = logging.getLogger(__name__)


# ============================================================
# Lookups
# ============================================================

async def get_from_id(db: AsyncSession, group_id: int) -> Optional[Group]:
    result = await db.execute(select(Group).where(Group.id == group_id))
    return result.scalar_one_or_none()


async def get_from_name(db: AsyncSession, groupname: str) -> Optional[Group]:
    result = await db.execute(select(Group).where(Group.groupname == groupname))
    return result.scalar_one_or_none()


async def get_id_from_name(db: AsyncSession, groupname: str) -> Optional[int]:
    result = await db.execute(select(Group.id).where(Group.groupname == groupname))
    return result.scalar_one_or_none()


async def resolve_group(db: AsyncSession, name_or_id: Union[int, str]) -> Group:
    """Find a group by id or by name, raising NotFoundError."""
    if isinstance(name_or_id, int) or (isinstance(name_or_id, str) and name_or_id.isdigit()):
        group = await get_from_id(db, int(name_or_id))
        if group is None and isinstance(name_or_id, str):
            group = await get_from_name(db, name_or_id)
    else:
        group = await get_from_name(db, name_or_id)

    if group is None:
        raise NotFoundError(f"Could not find a group with the name or id of '{name_or_id}'")
    return group


async def free_groupname(db: AsyncSession, groupname: str) -> bool:
    """True if no group holds the name; raises ConflictError otherwise."""
    if await get_id_from_name(db, groupname) is not None:
        raise ConflictError("groupname in use")
    return True


async def user_permissions(db: AsyncSession, access: UserAccess, group: Group) -> GroupCapabilities:
    return await group_capabilities(db, access, group.id)


# ============================================================
# Mutations
# ============================================================

async def create_group(db: AsyncSession, access: UserAccess, groupname: str) -> Group:
    """Create a group; its creator becomes the first admin."""
    await free_groupname(db, groupname)

    group = Group(groupname=groupname)
    db.add(group)
    await db.flush()
    db.add(GroupUsers(group_id=group.id, user_id=access.user_id, admin=True))
    await db.commit()

    logger.info(f"Group '{groupname}' created by '{access.username}'")
    return group


async def add_user_to_group(
    db: AsyncSession,
    access: UserAccess,
    group: Group,
    user_to_add: User,
    admin: bool
) -> None:
    """Add a user to a group, or update their admin flag if already a member."""
    if not (await user_permissions(db, access, group)).can_add_users:
        logger.warning(f"'{access.username}' tried to add users to '{group.groupname}' without admin rights")
        raise AuthorizationError("User is not a group admin so cannot add users")

    membership = await db.get(GroupUsers, (group.id, user_to_add.id))
    if membership is not None:
        membership.admin = admin
    else:
        db.add(GroupUsers(group_id=group.id, user_id=user_to_add.id, admin=admin))
    await db.commit()

    logger.info(f"'{user_to_add.username}' added to group '{group.groupname}' (admin={admin})")


async def remove_user_from_group(
    db: AsyncSession,
    access: UserAccess,
    group: Group,
    user_to_remove: User
) -> int:
    """Remove a user's membership rows; returns how many were removed."""
    if not (await user_permissions(db, access, group)).can_remove_users:
        logger.warning(f"'{access.username}' tried to remove users from '{group.groupname}' without admin rights")
        raise AuthorizationError("User is not a group admin so cannot remove users")

    result = await db.execute(
        select(GroupUsers).where(
            GroupUsers.group_id == group.id,
            GroupUsers.user_id == user_to_remove.id
        )
    )
    removed = 0
    for membership in result.scalars().all():
        await db.delete(membership)
        removed += 1
    await db.commit()

    logger.info(f"'{user_to_remove.username}' removed from group '{group.groupname}'")
    return removed


# ============================================================
# Access-filtered query
# ============================================================

async def query_groups(
    db: AsyncSession,
    access: UserAccess,
    groupname: Optional[str] = None,
    group_id: Optional[int] = None,
    offset: int = 0,
    limit: Optional[int] = None
) -> Page[GroupResponse]:
    """
    Groups matching the filters that the user is a member of (every
    matching group for global read), ordered by id.
    """
    filters = []
    if groupname is not None:
        filters.append(Group.groupname == groupname)
    if group_id is not None:
        filters.append(Group.id == group_id)
    clauses = combine(*filters, group_visibility_clause(access, Group.id))

    count = await db.scalar(select(func.count()).select_from(Group).where(*clauses))

    query = select(Group).where(*clauses).order_by(Group.id).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    groups = list((await db.execute(query)).scalars().all())

    if not groups:
        return Page[GroupResponse](count=count or 0, rows=[])

    group_ids = [g.id for g in groups]
    devices = await _devices_by_group(db, group_ids)
    members = await _members_by_group(db, group_ids)

    rows = []
    for group in groups:
        group_members = members.get(group.id, [])
        if access.has_global_read:
            users = [UserSummary(id=m.id, username=m.username) for m in group_members]
        else:
            users = [UserSummary(id=m.id, username=m.username) for m in group_members if m.id == access.user_id]
        rows.append(GroupResponse(
            id=group.id,
            groupname=group.groupname,
            users=users,
            devices=devices.get(group.id, []),
            group_users=group_members
        ))
    return Page[GroupResponse](count=count, rows=rows)


async def _devices_by_group(db: AsyncSession, group_ids: Sequence[int]) -> Dict[int, List[GroupDevice]]:
    result = await db.execute(
        select(Device.id, Device.devicename, Device.group_id)
        .where(Device.group_id.in_(group_ids))
        .order_by(Device.id)
    )
    devices: Dict[int, List[GroupDevice]] = {}
    for device_id, devicename, group_id in result.all():
        devices.setdefault(group_id, []).append(GroupDevice(id=device_id, devicename=devicename))
    return devices


async def _members_by_group(db: AsyncSession, group_ids: Sequence[int]) -> Dict[int, List[GroupMember]]:
    """Every member of each group with their admin flag (the enrichment pass)."""
    result = await db.execute(
        select(GroupUsers.group_id, GroupUsers.admin, User.id, User.username)
        .join(User, User.id == GroupUsers.user_id)
        .where(GroupUsers.group_id.in_(group_ids))
        .order_by(User.username)
    )
    members: Dict[int, List[GroupMember]] = {}
    for group_id, admin, user_id, username in result.all():
        members.setdefault(group_id, []).append(GroupMember(id=user_id, username=username, is_admin=admin))
    return members


# ============================================================
# Stations
# ============================================================

async def add_stations_to_group(
    db: AsyncSession,
    access: UserAccess,
    group: Group,
    stations_to_add: Sequence[StationIn],
    apply_to_recordings_from: Optional[datetime] = None
) -> StationImportResult:
    """
    Bulk import the group's stations from an external list.

    Stations are matched by name: moved ones get the new lat/lng, new ones
    are created and ones missing from the list are retired. Optionally the
    group's recordings from ``apply_to_recordings_from`` onwards are
    re-matched to the resulting stations.
    """
    if not (await user_permissions(db, access, group)).can_add_stations:
        raise AuthorizationError("User is not a group admin so cannot add stations")

    current = await get_stations(db, group.id)
    changes = reconcile_stations(current, stations_to_add)

    for existing, station in changes.to_update:
        existing.lat = station.lat
        existing.lng = station.lng

    retired_at = utcnow()
    for station in changes.to_retire:
        station.retired_at = retired_at

    created = [
        Station(name=s.name, lat=s.lat, lng=s.lng, group_id=group.id)
        for s in changes.to_create
    ]
    db.add_all(created)
    await db.flush()

    recordings_updated = 0
    if apply_to_recordings_from is not None:
        active = [s for s in current if not s.is_retired] + created
        recordings_updated = await rematch_recordings(db, group.id, active, apply_to_recordings_from)

    await db.commit()

    logger.info(
        f"Stations imported into '{group.groupname}': {len(created)} added, "
        f"{len(changes.to_update)} updated, {len(changes.to_retire)} retired"
    )
    return StationImportResult(
        added=[s.name for s in created],
        updated=[existing.name for existing, _ in changes.to_update],
        retired=[s.name for s in changes.to_retire],
        recordings_updated=recordings_updated
    )


async def remove_all_stations_from_group(db: AsyncSession, access: UserAccess, group: Group) -> int:
    """Retire every active station of the group; returns how many."""
    if not (await user_permissions(db, access, group)).can_add_stations:
        raise AuthorizationError("User is not a group admin so cannot remove stations")

    retired_at = utcnow()
    stations = await get_stations(db, group.id)
    for station in stations:
        station.retired_at = retired_at
    await db.commit()

    logger.info(f"Retired {len(stations)} stations of group '{group.groupname}'")
    return len(stations)
