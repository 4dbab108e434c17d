"""
Cacophony API - Devices Router
Device registration, device users and device queries
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.errors import ClientError
from cacophony_api.models.device import Device
from cacophony_api.responses import send
from cacophony_api.schemas.device import (
    DeviceQueryItem, DeviceRegister, DeviceReregister, DeviceUserAdd, DeviceUserRemove
)
from cacophony_api.services import devices as device_service
from cacophony_api.services.auth import AuthService, get_current_access, get_current_device_required
from cacophony_api.services.groups import get_from_name
from cacophony_api.services.permissions import UserAccess

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/devices", tags=["devices"])

_query_items = TypeAdapter(List[DeviceQueryItem])
_group_names = TypeAdapter(List[str])


async def _group_by_name_or_422(db: AsyncSession, groupname: str):
    group = await get_from_name(db, groupname)
    if group is None:
        raise ClientError(f"Could not find a group with the name of '{groupname}'", status_code=422)
    return group


async def _user_or_422(db: AsyncSession, username: str):
    user = await AuthService.get_user_by_name(db, username)
    if user is None:
        raise ClientError(f"Could not find a user with the name of '{username}'", status_code=422)
    return user


def _parse_json_param(name: str, raw: Optional[str], adapter: TypeAdapter):
    if raw is None:
        return None
    try:
        return adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError):
        raise ClientError(f"Invalid JSON in '{name}' query parameter", status_code=422)


@router.post("")
async def register_device(
    device_data: DeviceRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a device into an existing group and return its token."""
    group = await _group_by_name_or_422(db, device_data.group)
    device = await device_service.register_device(
        db, device_data.devicename, device_data.password, group
    )
    return send(
        200,
        ["Created new device."],
        id=device.id,
        token="JWT " + AuthService.create_entity_token(device)
    )


@router.get("")
async def list_devices(
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    page = await device_service.all_for_user(db, access)
    return send(200, ["Completed get devices query."], devices=page)


@router.get("/query")
async def query_devices(
    devices: Optional[str] = Query(default=None, description="JSON list of {devicename, groupname}"),
    groups: Optional[str] = Query(default=None, description="JSON list of group names"),
    operator: str = device_service.OPERATOR_OR,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Look up visible devices by name/group pairs or group names.

    ``operator`` decides whether all (``and``) or any (``or``) of the
    conditions must match.
    """
    if operator.lower() not in (device_service.OPERATOR_AND, device_service.OPERATOR_OR):
        raise ClientError("operator must be 'and' or 'or'", status_code=422)
    items = _parse_json_param("devices", devices, _query_items)
    groupnames = _parse_json_param("groups", groups, _group_names)

    result = await device_service.query_devices(db, access, items, groupnames, operator)
    return send(
        200,
        ["Completed get devices query."],
        devices=result.devices,
        nameMatches=result.name_matches
    )


@router.post("/reregister")
async def reregister_device(
    data: DeviceReregister,
    device: Device = Depends(get_current_device_required),
    db: AsyncSession = Depends(get_db)
):
    """Move the authenticated device to a new name, group and password."""
    group = await _group_by_name_or_422(db, data.new_group)
    device = await device_service.reregister(db, device, data.new_name, group, data.new_password)
    return send(
        200,
        ["Registered the device again."],
        id=device.id,
        token="JWT " + AuthService.create_entity_token(device)
    )


# ============================================================
# Device users
# ============================================================

@router.get("/users")
async def get_device_users(
    device_id: int = Query(..., alias="deviceId"),
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    device = await device_service.get_visible_device(db, access, device_id)
    users = await device_service.device_users(db, access, device)
    return send(200, ["Got device users."], rows=users)


@router.post("/users")
async def add_device_user(
    data: DeviceUserAdd,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    device = await device_service.get_visible_device(db, access, data.device_id)
    user = await _user_or_422(db, data.username)
    await device_service.add_user_to_device(db, access, device, user, data.admin)
    return send(200, ["Added user to device."])


@router.delete("/users")
async def remove_device_user(
    data: DeviceUserRemove,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    device = await device_service.get_visible_device(db, access, data.device_id)
    user = await _user_or_422(db, data.username)
    if not await device_service.remove_user_from_device(db, access, device, user):
        return send(400, ["Failed to remove user from the device."])
    return send(200, ["Removed user from the device."])
