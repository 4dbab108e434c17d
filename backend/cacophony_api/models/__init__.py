"""
Cacophony API - Database Models
"""
from cacophony_api.models.user import User, GlobalPermission
from cacophony_api.models.group import Group, GroupUsers
from cacophony_api.models.device import Device, DeviceUsers
from cacophony_api.models.station import Station
from cacophony_api.models.event import Event, DetailSnapshot
from cacophony_api.models.recording import Recording, RecordingType

__all__ = [
    "User",
    "GlobalPermission",
    "Group",
    "GroupUsers",
    "Device",
    "DeviceUsers",
    "Station",
    "Event",
    "DetailSnapshot",
    "Recording",
    "RecordingType",
]
