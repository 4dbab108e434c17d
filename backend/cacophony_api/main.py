"""
Cacophony API - Main Application Entry Point
Users, groups, devices, stations, events and recordings for wildlife monitoring
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from cacophony_api.config import get_settings
from cacophony_api.database import init_db, async_session_maker
from cacophony_api.errors import APIError
from cacophony_api.responses import send
from cacophony_api.routers import (
    auth_router,
    devices_router,
    events_router,
    groups_router,
    health_router,
    recordings_router,
    stations_router,
    users_router,
)
from cacophony_api.services.auth import create_default_admin

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"🚀 Starting {settings.app_name}...")

    await init_db()
    logger.info("✅ Database initialized")

    async with async_session_maker() as session:
        await create_default_admin(session)

    yield

    # Shutdown
    logger.info(f"👋 Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="Management API for wildlife monitoring devices, their groups, stations and recordings",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# Error handlers
# ============================================================

def _validation_message(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


@app.exception_handler(APIError)
async def _api_error_handler(request: Request, exc: APIError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.http_status}: {exc}")
    return send(exc.http_status, exc.messages)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [_validation_message(error) for error in exc.errors()]
    return send(status.HTTP_422_UNPROCESSABLE_ENTITY, messages)


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return send(exc.status_code, [str(exc.detail)])


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return send(status.HTTP_500_INTERNAL_SERVER_ERROR, ["Internal server error"])


# Include routers
app.include_router(health_router, prefix="/api")
app.include_router(auth_router)
for router in (
    users_router,
    groups_router,
    stations_router,
    devices_router,
    events_router,
    recordings_router,
):
    app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return send(
        200,
        [],
        name=settings.app_name,
        version=API_VERSION,
        docs="/docs",
        health="/api/health"
    )
