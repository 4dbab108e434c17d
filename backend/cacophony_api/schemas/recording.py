"""
Cacophony API - Recording Pydantic Schemas
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator, model_validator

from cacophony_api.database import to_utc
from cacophony_api.models.recording import RecordingType
from cacophony_api.schemas.common import APIModel


class RecordingCreate(APIModel):
    """Metadata a device uploads alongside a recording."""
    type: RecordingType
    recording_date_time: datetime
    duration: Optional[float] = Field(default=None, ge=0)
    lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    file_key: Optional[str] = Field(default=None, max_length=500)
    additional_metadata: Optional[Dict[str, Any]] = None

    @field_validator("recording_date_time")
    @classmethod
    def normalize_recording_date_time(cls, v: datetime) -> datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def check_location(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be given together")
        return self


class RecordingResponse(APIModel):
    id: int
    type: RecordingType
    recording_date_time: datetime
    duration: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    file_key: Optional[str] = None
    additional_metadata: Optional[Dict[str, Any]] = None
    device_id: int
    group_id: int
    station_id: Optional[int] = None
    created_at: Optional[datetime] = None


class RecordingFilter(APIModel):
    """Filter parameters for recordings query."""
    device_id: Optional[int] = None
    group_id: Optional[int] = None
    station_id: Optional[int] = None
    type: Optional[RecordingType] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @field_validator("from_date", "to_date")
    @classmethod
    def normalize_range(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else v
