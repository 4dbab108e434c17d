"""
Cacophony API - Groups Router
Groups, group membership and group stations
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.errors import NotFoundError
from cacophony_api.responses import send
from cacophony_api.schemas.group import GroupCreate, GroupMemberAdd, GroupMemberRemove
from cacophony_api.schemas.station import StationImport, StationResponse
from cacophony_api.services import groups as group_service
from cacophony_api.services.auth import AuthService, get_current_access
from cacophony_api.services.permissions import UserAccess
from cacophony_api.services.stations import list_group_stations

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/groups", tags=["groups"])


async def _get_user_or_404(db: AsyncSession, username: str):
    user = await AuthService.get_user_by_name(db, username)
    if not user:
        raise NotFoundError(f"Could not find a user with the name of '{username}'")
    return user


@router.post("")
async def create_group(
    group_data: GroupCreate,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """Create a new group with the caller as its admin."""
    group = await group_service.create_group(db, access, group_data.groupname)
    return send(200, ["Created new group."], groupId=group.id)


@router.get("")
async def query_groups(
    groupname: Optional[str] = None,
    group_id: Optional[int] = Query(default=None, alias="groupId"),
    offset: int = Query(default=0, ge=0),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Groups the caller belongs to (all of them with global read).

    Each group lists its devices and its members with their admin flag.
    """
    page = await group_service.query_groups(
        db, access, groupname=groupname, group_id=group_id, offset=offset, limit=limit
    )
    return send(200, [], groups=page.rows, count=page.count)


@router.post("/users")
async def add_user_to_group(
    membership: GroupMemberAdd,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    group = await group_service.resolve_group(db, membership.group)
    user = await _get_user_or_404(db, membership.username)
    await group_service.add_user_to_group(db, access, group, user, membership.admin)
    return send(200, ["Added user to group."])


@router.delete("/users")
async def remove_user_from_group(
    membership: GroupMemberRemove,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    group = await group_service.resolve_group(db, membership.group)
    user = await _get_user_or_404(db, membership.username)
    removed = await group_service.remove_user_from_group(db, access, group, user)
    if not removed:
        return send(400, ["Failed to remove user from the group."])
    return send(200, ["Removed user from the group."])


# ============================================================
# Stations
# ============================================================

@router.get("/{group}/stations")
async def get_group_stations(
    group: str,
    include_retired: bool = Query(default=False, alias="includeRetired"),
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    target = await group_service.resolve_group(db, group)
    stations = await list_group_stations(db, access, target, include_retired)
    return send(
        200,
        [],
        stations=[StationResponse.model_validate(s) for s in stations]
    )


@router.post("/{group}/stations")
async def import_group_stations(
    group: str,
    station_import: StationImport,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace the group's station list with an external one.

    Stations are matched by name; ones missing from the list are retired.
    With ``fromDate``, recordings since then are re-assigned to stations.
    """
    target = await group_service.resolve_group(db, group)
    result = await group_service.add_stations_to_group(
        db, access, target, station_import.stations, station_import.from_date
    )
    return send(200, ["Updated stations for group."], **result.model_dump(by_alias=True))


@router.delete("/{group}/stations")
async def retire_group_stations(
    group: str,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    target = await group_service.resolve_group(db, group)
    retired = await group_service.remove_all_stations_from_group(db, access, target)
    return send(200, [f"Retired {retired} stations."], retired=retired)
