"""
Cacophony API - Pydantic Schemas
"""
from cacophony_api.schemas.common import APIModel, Page
from cacophony_api.schemas.device import DeviceResponse, DeviceRegister, DeviceReregister
from cacophony_api.schemas.event import EventCreate, EventResponse
from cacophony_api.schemas.group import GroupCreate, GroupResponse
from cacophony_api.schemas.recording import RecordingCreate, RecordingResponse
from cacophony_api.schemas.station import StationIn, StationResponse
from cacophony_api.schemas.user import UserCreate, UserResponse

__all__ = [
    "APIModel",
    "Page",
    "DeviceResponse",
    "DeviceRegister",
    "DeviceReregister",
    "EventCreate",
    "EventResponse",
    "GroupCreate",
    "GroupResponse",
    "RecordingCreate",
    "RecordingResponse",
    "StationIn",
    "StationResponse",
    "UserCreate",
    "UserResponse",
]
