"""
Cacophony API - Stations Router
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.database import get_db
from cacophony_api.errors import NotFoundError
from cacophony_api.responses import send
from cacophony_api.schemas.station import StationResponse
from cacophony_api.services.auth import get_current_access
from cacophony_api.services.permissions import UserAccess, can_see_group
from cacophony_api.services.stations import get_station

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("/{station_id}")
async def get_station_by_id(
    station_id: int,
    access: UserAccess = Depends(get_current_access),
    db: AsyncSession = Depends(get_db)
):
    station = await get_station(db, station_id)
    if station is None or not await can_see_group(db, access, station.group_id):
        raise NotFoundError(f"Could not find a station with an id of '{station_id}'")
    return send(200, [], station=StationResponse.model_validate(station))
