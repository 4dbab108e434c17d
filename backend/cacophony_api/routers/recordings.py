"""
Cacophony API - Recordings Router
Recording metadata uploaded by devices
"""
from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.models.device import Device
from cacophony_api.models.recording import RecordingType
from cacophony_api.responses import send
from cacophony_api.schemas.recording import RecordingCreate, RecordingFilter, RecordingResponse
from cacophony_api.services import recordings as recording_service
from cacophony_api.services.auth import get_current_access, get_current_device_required
from cacophony_api.services.permissions import UserAccess

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recordings", tags=["recordings"])


@router.post("")
async def upload_recording(
    recording_data: RecordingCreate,
    device: Device = Depends(get_current_device_required),
    db: AsyncSession = Depends(get_db)
):
    recording = await recording_service.add_recording(db, device, recording_data)
    return send(200, ["Thanks for the recording."], recordingId=recording.id)


@router.get("")
async def query_recordings(
    device_id: Optional[int] = Query(default=None, alias="deviceId"),
    group_id: Optional[int] = Query(default=None, alias="groupId"),
    station_id: Optional[int] = Query(default=None, alias="stationId"),
    type: Optional[RecordingType] = None,
    from_date: Optional[datetime] = Query(default=None, alias="fromDate"),
    to_date: Optional[datetime] = Query(default=None, alias="toDate"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    """
    List recordings of visible devices, newest first.

    Filter by device, group, station, type and a recording time range.
    """
    filters = RecordingFilter(
        device_id=device_id,
        group_id=group_id,
        station_id=station_id,
        type=type,
        from_date=from_date,
        to_date=to_date
    )
    page = await recording_service.query_recordings(db, access, filters, offset=offset, limit=limit)
    return send(200, ["Completed query."], rows=page.rows, count=page.count, offset=offset, limit=limit)


@router.get("/{recording_id}")
async def get_recording(
    recording_id: int,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    recording = await recording_service.get_recording(db, access, recording_id)
    return send(200, [], recording=RecordingResponse.model_validate(recording))
