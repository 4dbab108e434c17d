"""
Cacophony API - API Routers
"""
from cacophony_api.routers.auth import router as auth_router
from cacophony_api.routers.devices import router as devices_router
from cacophony_api.routers.events import router as events_router
from cacophony_api.routers.groups import router as groups_router
from cacophony_api.routers.health import router as health_router
from cacophony_api.routers.recordings import router as recordings_router
from cacophony_api.routers.stations import router as stations_router
from cacophony_api.routers.users import router as users_router

__all__ = [
    "auth_router",
    "devices_router",
    "events_router",
    "groups_router",
    "health_router",
    "recordings_router",
    "stations_router",
    "users_router",
]
