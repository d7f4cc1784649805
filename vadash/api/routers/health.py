"""
Health and probe endpoints for VA Dashboard.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from datetime import datetime
import psutil
import time

from config.database import DatabaseManager
from config.settings import settings
from vadash.api.schemas.base import BaseSchema

router = APIRouter()

STARTED_AT = time.time()


class HealthResponse(BaseSchema):
    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime: float
    database: Dict[str, str]
    system: Dict[str, Any]


def get_system_info() -> Dict[str, Optional[Any]]:
    """Host load as seen by this process; cpu is sampled since the previous call."""
    load = psutil.getloadavg() if hasattr(psutil, "getloadavg") else None
    return {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": psutil.virtual_memory().percent,
        "disk_percent": psutil.disk_usage("/").percent,
        "load_average": list(load) if load else None,
    }


def get_database_health() -> Dict[str, str]:
    if DatabaseManager.health_check():
        return {"status": "healthy", "connection": "ok"}
    return {"status": "unhealthy", "connection": "failed"}


@router.get("/", response_model=HealthResponse)
async def health_check():
    """Service status; ``unhealthy`` whenever the database cannot be reached."""
    database = get_database_health()
    return HealthResponse(
        status=database["status"],
        timestamp=datetime.utcnow(),
        version=settings.app_version,
        environment=settings.environment,
        uptime=round(time.time() - STARTED_AT, 3),
        database=database,
        system=get_system_info()
    )


@router.get("/live")
async def liveness_probe():
    return {"status": "alive", "timestamp": datetime.utcnow()}


@router.get("/ready")
async def readiness_probe():
    """503 until the database answers."""
    if not DatabaseManager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unhealthy",
                "timestamp": datetime.utcnow().isoformat()
            }
        )
    return {"status": "ready", "timestamp": datetime.utcnow()}
