"""
Cacophony API - Station Pydantic Schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from cacophony_api.database import to_utc
from cacophony_api.schemas.common import APIModel


class StationIn(APIModel):
    """A station from an external authoritative list (e.g. trap.nz)."""
    name: str = Field(..., min_length=1, max_length=255)
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class StationImport(APIModel):
    """
    Bulk import of a group's stations.

    ``from_date``: when given, recordings of the group made at or after this
    time are re-matched against the resulting stations.
    """
    stations: List[StationIn]
    from_date: Optional[datetime] = None

    @field_validator("from_date")
    @classmethod
    def normalize_from_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else v


class StationResponse(APIModel):
    id: int
    name: str
    lat: float
    lng: float
    group_id: int
    created_at: Optional[datetime] = None
    retired_at: Optional[datetime] = None


class StationImportResult(APIModel):
    added: List[str] = []
    updated: List[str] = []
    retired: List[str] = []
    recordings_updated: int = 0
