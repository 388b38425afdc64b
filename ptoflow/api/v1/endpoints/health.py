from fastapi import APIRouter, Depends, status as http_status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from ptoflow.core.database import get_db
from ptoflow.core.config import settings
from sqlalchemy import text
from typing import Optional, Dict, Any
import logging
import sys
import platform
import time
from datetime import datetime, timezone

router = APIRouter()
logger = logging.getLogger(__name__)

SERVICE_NAME = "PTOFlow API"

# Track server startup time for uptime calculation
SERVER_START_TIME = time.time()


async def get_database_info(db: AsyncSession) -> Dict[str, Any]:
    """Database connectivity and migration state."""
    db_info: Dict[str, Any] = {
        "status": "unknown",
        "migration_status": None,
    }

    try:
        await db.execute(text("SELECT 1"))
        db_info["status"] = "connected"

        try:
            result = await db.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
            current_version = result.scalar_one_or_none()
            db_info["migration_status"] = {
                "initialized": True,
                "current_version": current_version if current_version else "unknown",
            }
        except Exception as e:
            logger.debug(f"Could not check migration status: {e}")
            await db.rollback()
            db_info["migration_status"] = {
                "initialized": False,
                "current_version": None,
            }

    except Exception as e:
        db_info["status"] = "disconnected"
        db_info["error"] = str(e)
        logger.error(f"Database connection error in health check: {str(e)}", exc_info=True)

    return db_info


@router.get("/health")
async def health_check(db: Optional[AsyncSession] = Depends(get_db)):
    """
    Health check with service, database and configuration status.

    Returns:
        - 200 OK: Service is healthy
        - 503 Service Unavailable: Database disconnected
    """
    uptime_seconds = time.time() - SERVER_START_TIME

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": {
            "name": SERVICE_NAME,
            "version": "1.0.0",
            "uptime_seconds": round(uptime_seconds, 2),
        },
        "system": {
            "python_version": sys.version.split()[0],
            "platform": platform.platform(),
        },
        "database": {},
        "configuration": {
            "environment": settings.ENVIRONMENT,
            "timezone": settings.TIMEZONE,
            "cancellation_notice_hours": settings.CANCELLATION_NOTICE_HOURS,
            "cors_origins_configured": bool(settings.CORS_ORIGINS),
        },
    }

    http_code = http_status.HTTP_200_OK

    db_info = await get_database_info(db)
    health_status["database"] = db_info
    if db_info.get("status") != "connected":
        health_status["status"] = "unhealthy"
        health_status["error"] = db_info.get("error", "Database connection failed")
        http_code = http_status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(status_code=http_code, content=health_status)


@router.get("/health/ready")
async def readiness_check(db: Optional[AsyncSession] = Depends(get_db)):
    """Ready to accept traffic: requires a database connection."""
    try:
        await db.execute(text("SELECT 1"))
        return JSONResponse(
            status_code=http_status.HTTP_200_OK,
            content={"status": "ready", "service": SERVICE_NAME},
        )
    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "service": SERVICE_NAME,
                "error": "Database connection failed",
            },
        )


@router.get("/health/live")
async def liveness_check():
    """Process is alive. Does not touch the database."""
    return JSONResponse(
        status_code=http_status.HTTP_200_OK,
        content={"status": "alive", "service": SERVICE_NAME},
    )
