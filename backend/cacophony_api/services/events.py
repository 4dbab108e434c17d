"""
Cacophony API - Event Service
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.errors import ClientError
from cacophony_api.models.device import Device
from cacophony_api.models.event import DetailSnapshot, Event
from cacophony_api.schemas.common import Page
from cacophony_api.schemas.event import EventResponse
from cacophony_api.services.permissions import UserAccess, combine, device_visibility_clause

logger = logging.getLogger(__name__)


async def get_or_create_detail(
    db: AsyncSession,
    event_type: str,
    details: Optional[Dict[str, Any]]
) -> DetailSnapshot:
    """Reuse the snapshot with this exact type and details, or create it."""
    result = await db.execute(select(DetailSnapshot).where(DetailSnapshot.type == event_type))
    for snapshot in result.scalars().all():
        if (snapshot.details or None) == (details or None):
            return snapshot

    snapshot = DetailSnapshot(type=event_type, details=details)
    db.add(snapshot)
    await db.flush()
    return snapshot


async def add_events(
    db: AsyncSession,
    device: Device,
    date_times: Sequence[datetime],
    event_type: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    event_detail_id: Optional[int] = None
) -> Tuple[int, int]:
    """
    Record one event per timestamp for the device.

    Returns (events added, detail snapshot id).
    """
    if event_detail_id is not None:
        snapshot = await db.get(DetailSnapshot, event_detail_id)
        if snapshot is None:
            raise ClientError(f"Could not find an event detail with an id of '{event_detail_id}'", status_code=422)
    elif event_type:
        snapshot = await get_or_create_detail(db, event_type, details)
    else:
        raise ClientError("An event description or detail id is required", status_code=422)

    db.add_all([
        Event(date_time=date_time, device_id=device.id, event_detail_id=snapshot.id)
        for date_time in date_times
    ])
    await db.commit()

    logger.info(f"Added {len(date_times)} '{snapshot.type}' events for device {device.id}")
    return len(date_times), snapshot.id


async def query_events(
    db: AsyncSession,
    access: UserAccess,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    device_id: Optional[int] = None,
    offset: int = 0,
    limit: Optional[int] = None
) -> Page[EventResponse]:
    """
    Events of devices the user can see, oldest first.

    ``start_time`` is inclusive and ``end_time`` exclusive.
    """
    filters = []
    if start_time is not None:
        filters.append(Event.date_time >= start_time)
    if end_time is not None:
        filters.append(Event.date_time < end_time)
    if device_id is not None:
        filters.append(Event.device_id == device_id)
    clauses = combine(*filters, device_visibility_clause(access, Event.device_id))

    count = await db.scalar(select(func.count()).select_from(Event).where(*clauses))

    query = select(Event).where(*clauses).order_by(Event.date_time, Event.id).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    events = (await db.execute(query)).scalars().all()

    return Page[EventResponse](
        count=count,
        rows=[EventResponse.model_validate(event) for event in events]
    )
