"""
Cacophony API - Station Service

Station reconciliation for bulk imports, and matching recordings to the
nearest station of their group.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.config import get_settings
from cacophony_api.errors import AuthorizationError
from cacophony_api.models.group import Group
from cacophony_api.models.recording import Recording
from cacophony_api.models.station import Station
from cacophony_api.services.permissions import UserAccess, can_see_group

logger = logging.getLogger(__name__)

settings = get_settings()

EARTH_RADIUS_METERS = 6371008.8


@dataclass
class StationChanges:
    """What a bulk import does to a group's active stations."""
    to_create: list = field(default_factory=list)
    to_update: List[Tuple[Station, object]] = field(default_factory=list)
    to_retire: List[Station] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_retire)


def reconcile_stations(current: Sequence[Station], incoming: Sequence) -> StationChanges:
    """
    Diff a group's stations against an incoming list, as sets keyed by name.

    - in both, with a different lat/lng: update
    - only incoming: create
    - only current: retire

    Retired stations are ignored on both sides of the comparison, so an
    incoming station named like a retired one is created afresh. When the
    incoming list repeats a name, the last entry wins.
    """
    active: Dict[str, Station] = {s.name: s for s in current if not s.is_retired}
    wanted: Dict[str, object] = {}
    for station in incoming:
        wanted[station.name] = station

    changes = StationChanges()
    for name, station in wanted.items():
        existing = active.get(name)
        if existing is None:
            changes.to_create.append(station)
        elif existing.lat != station.lat or existing.lng != station.lng:
            changes.to_update.append((existing, station))

    changes.to_retire = [s for name, s in active.items() if name not in wanted]
    return changes


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def nearest_station(
    lat: float,
    lng: float,
    stations: Sequence[Station],
    max_distance: Optional[float] = None
) -> Optional[Station]:
    """Closest station within ``max_distance`` meters, or None."""
    if max_distance is None:
        max_distance = settings.station_match_radius_meters

    best = None
    best_distance = max_distance
    for station in stations:
        distance = distance_meters(lat, lng, station.lat, station.lng)
        if distance <= best_distance:
            best, best_distance = station, distance
    return best


async def get_station(db: AsyncSession, station_id: int) -> Optional[Station]:
    result = await db.execute(select(Station).where(Station.id == station_id))
    return result.scalar_one_or_none()


async def get_stations(db: AsyncSession, group_id: int, include_retired: bool = False) -> List[Station]:
    query = select(Station).where(Station.group_id == group_id)
    if not include_retired:
        query = query.where(Station.retired_at.is_(None))
    result = await db.execute(query.order_by(Station.name, Station.id))
    return list(result.scalars().all())


async def list_group_stations(
    db: AsyncSession,
    access: UserAccess,
    group: Group,
    include_retired: bool = False
) -> List[Station]:
    if not await can_see_group(db, access, group.id):
        raise AuthorizationError(f"User is not a member of group '{group.groupname}'")
    return await get_stations(db, group.id, include_retired)


async def station_for_location(db: AsyncSession, group_id: int, lat: float, lng: float) -> Optional[Station]:
    """The group's active station a recording at (lat, lng) belongs to."""
    return nearest_station(lat, lng, await get_stations(db, group_id))


async def rematch_recordings(
    db: AsyncSession,
    group_id: int,
    stations: Sequence[Station],
    from_date: datetime
) -> int:
    """
    Re-assign the group's located recordings made at or after ``from_date``
    to their nearest station. Returns how many recordings changed.
    """
    result = await db.execute(
        select(Recording).where(
            Recording.group_id == group_id,
            Recording.recording_date_time >= from_date,
            Recording.lat.is_not(None),
            Recording.lng.is_not(None)
        )
    )
    changed = 0
    for recording in result.scalars().all():
        station = nearest_station(recording.lat, recording.lng, stations)
        station_id = station.id if station else None
        if recording.station_id != station_id:
            recording.station_id = station_id
            changed += 1

    logger.info(f"Re-matched {changed} recordings of group {group_id} from {from_date.isoformat()}")
    return changed
