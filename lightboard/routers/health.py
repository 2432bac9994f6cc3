"""
Health endpoints for load balancers and uptime checks.

/health/live  — the process is up
/health/ready — database reachable and media root writable
/health       — full status with version and open traffic-light sockets
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.broadcast import traffic_light_channel
from lightboard.core.config import settings
from lightboard.core.database import get_db
from lightboard.core.logging import get_logger
from lightboard.core.storage import LocalBlobStore, get_blob_store

router = APIRouter()
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    timestamp: datetime
    database: str
    media_storage: str
    live_subscribers: int


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health.database_unreachable", error=str(e))
        return "unreachable"
    return "connected"


@router.get("/live", summary="Liveness probe")
async def liveness():
    return {"status": "alive"}


@router.get("/ready", summary="Readiness probe")
async def readiness(
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    db_status = await _database_status(db)
    storage_status = "writable" if store.is_writable() else "unavailable"
    ready = db_status == "connected" and storage_status == "writable"
    return {
        "status": "ready" if ready else "degraded",
        "database": db_status,
        "media_storage": storage_status,
    }


@router.get("", response_model=HealthResponse, summary="Full health status")
async def health(
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    db_status = await _database_status(db)
    storage_status = "writable" if store.is_writable() else "unavailable"
    healthy = db_status == "connected" and storage_status == "writable"

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.API_VERSION,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        media_storage=storage_status,
        live_subscribers=traffic_light_channel.subscriber_count,
    )
