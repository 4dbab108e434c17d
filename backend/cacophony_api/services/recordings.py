"""
Cacophony API - Recording Service

Recording metadata only; the media files are kept by external storage.
"""
import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.errors import NotFoundError
from cacophony_api.models.device import Device
from cacophony_api.models.recording import Recording
from cacophony_api.schemas.common import Page
from cacophony_api.schemas.recording import RecordingCreate, RecordingFilter, RecordingResponse
from cacophony_api.services.permissions import UserAccess, combine, device_visibility_clause
from cacophony_api.services.stations import station_for_location

logger = logging.getLogger(__name__)


async def add_recording(db: AsyncSession, device: Device, data: RecordingCreate) -> Recording:
    """Store a device's recording, matched to its group's nearest station."""
    recording = Recording(
        **data.model_dump(),
        device_id=device.id,
        group_id=device.group_id
    )
    if recording.has_location:
        station = await station_for_location(db, device.group_id, recording.lat, recording.lng)
        recording.station_id = station.id if station else None

    db.add(recording)
    await db.commit()

    logger.info(f"Device {device.id} uploaded {data.type.value} recording {recording.id}")
    return recording


async def get_recording(db: AsyncSession, access: UserAccess, recording_id: int) -> Recording:
    """A recording of a device the user can see; NotFoundError otherwise."""
    clauses = combine(Recording.id == recording_id, device_visibility_clause(access, Recording.device_id))
    result = await db.execute(select(Recording).where(*clauses))
    recording = result.scalar_one_or_none()
    if recording is None:
        raise NotFoundError(f"Could not find a recording with an id of '{recording_id}'")
    return recording


async def query_recordings(
    db: AsyncSession,
    access: UserAccess,
    filters: Optional[RecordingFilter] = None,
    offset: int = 0,
    limit: Optional[int] = None
) -> Page[RecordingResponse]:
    """Recordings of devices the user can see, newest first."""
    filters = filters or RecordingFilter()
    conditions = []
    if filters.device_id is not None:
        conditions.append(Recording.device_id == filters.device_id)
    if filters.group_id is not None:
        conditions.append(Recording.group_id == filters.group_id)
    if filters.station_id is not None:
        conditions.append(Recording.station_id == filters.station_id)
    if filters.type is not None:
        conditions.append(Recording.type == filters.type)
    if filters.from_date is not None:
        conditions.append(Recording.recording_date_time >= filters.from_date)
    if filters.to_date is not None:
        conditions.append(Recording.recording_date_time < filters.to_date)
    clauses = combine(*conditions, device_visibility_clause(access, Recording.device_id))

    count = await db.scalar(select(func.count()).select_from(Recording).where(*clauses))

    query = (
        select(Recording)
        .where(*clauses)
        .order_by(Recording.recording_date_time.desc(), Recording.id.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    recordings = (await db.execute(query)).scalars().all()

    return Page[RecordingResponse](
        count=count,
        rows=[RecordingResponse.model_validate(r) for r in recordings]
    )
