"""
Cacophony API - Health Check Router
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cacophony_api.config import get_settings
from cacophony_api.database import get_db
from cacophony_api.responses import send
from cacophony_api.schemas.common import APIModel

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])
settings = get_settings()


class HealthStatus(APIModel):
    """Health check payload."""
    status: str
    app_name: str
    database: str


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.
    Verifies the database answers a trivial query.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        health = HealthStatus(status="degraded", app_name=settings.app_name, database="unreachable")
        return send(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            ["Database unreachable."],
            **health.model_dump(by_alias=True)
        )

    health = HealthStatus(status="healthy", app_name=settings.app_name, database="connected")
    return send(200, ["Healthy."], **health.model_dump(by_alias=True))
