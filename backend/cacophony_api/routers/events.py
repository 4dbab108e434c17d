"""
Cacophony API - Events Router
Device events (power on/off, audio bait played, ...) and event queries
"""
from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db, to_utc
from cacophony_api.errors import ClientError
from cacophony_api.responses import send
from cacophony_api.schemas.event import EventCreate
from cacophony_api.services import events as event_service
from cacophony_api.services.auth import USER, Principal, get_current_access, get_current_principal
from cacophony_api.services.devices import get_visible_device
from cacophony_api.services.permissions import UserAccess

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("")
async def add_events(
    event_data: EventCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Record events for a device.

    A device posts its own events. A user may post on behalf of a device
    they can see by giving ``deviceId``.
    """
    if principal.type == USER:
        if event_data.device_id is None:
            raise ClientError("deviceId is required when a user adds events", status_code=422)
        access = UserAccess.from_user(principal.user)
        device = await get_visible_device(db, access, event_data.device_id)
    else:
        device = principal.device

    description = event_data.description
    added, detail_id = await event_service.add_events(
        db,
        device,
        event_data.date_times,
        event_type=description.type if description else None,
        details=description.details if description else None,
        event_detail_id=event_data.event_detail_id
    )
    return send(200, ["Added events."], eventsAdded=added, eventDetailId=detail_id)


@router.get("")
async def query_events(
    start_time: Optional[datetime] = Query(default=None, alias="startTime"),
    end_time: Optional[datetime] = Query(default=None, alias="endTime"),
    device_id: Optional[int] = Query(default=None, alias="deviceId"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """Events of the devices the user can see, oldest first."""
    page = await event_service.query_events(
        db,
        access,
        start_time=to_utc(start_time) if start_time else None,
        end_time=to_utc(end_time) if end_time else None,
        device_id=device_id,
        offset=offset,
        limit=limit
    )
    return send(200, ["Completed query."], rows=page.rows, count=page.count, offset=offset, limit=limit)
