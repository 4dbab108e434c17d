"""
Cacophony API - Event Pydantic Schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from cacophony_api.database import to_utc
from cacophony_api.schemas.common import APIModel


class EventDescription(APIModel):
    """Event type and details, stored once as a shared snapshot."""
    type: str = Field(..., min_length=1, max_length=100)
    details: Optional[Dict[str, Any]] = None


class EventCreate(APIModel):
    """
    One or more occurrences of the same event.

    Either ``description`` or the id of an existing snapshot
    (``event_detail_id``) must be given. ``device_id`` is required when a
    user (rather than the device itself) posts the events.
    """
    date_times: List[datetime] = Field(..., min_length=1)
    description: Optional[EventDescription] = None
    event_detail_id: Optional[int] = None
    device_id: Optional[int] = None

    @field_validator("date_times")
    @classmethod
    def normalize_date_times(cls, v: List[datetime]) -> List[datetime]:
        return [to_utc(dt) for dt in v]

    @model_validator(mode="after")
    def check_detail(self):
        if self.description is None and self.event_detail_id is None:
            raise ValueError("either description or eventDetailId is required")
        return self


class EventDetailResponse(APIModel):
    type: str
    details: Optional[Dict[str, Any]] = None


class EventResponse(APIModel):
    id: int
    date_time: datetime
    device_id: int
    event_detail: EventDetailResponse
    created_at: Optional[datetime] = None
