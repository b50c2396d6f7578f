"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Dict
import asyncio

from ..models import HealthStatus
from ..dependencies import get_redis, get_storage
from oculus_backup.base import BaseDocumentStorage

router = APIRouter(prefix="/health", tags=["health"])


async def check_storage(storage: BaseDocumentStorage) -> bool:
    """Check document storage connectivity."""
    try:
        return await storage.health_check()
    except Exception:
        return False


async def check_redis(redis_client) -> bool:
    """Check Redis connectivity for job tracking."""
    if redis_client is None:
        return True  # Jobs are tracked in-process
    try:
        return bool(await redis_client.ping())
    except Exception:
        return False


@router.get("", response_model=HealthStatus)
async def health_check(
    storage: BaseDocumentStorage = Depends(get_storage),
    redis_client=Depends(get_redis),
) -> HealthStatus:
    """Health of the document store and job tracking."""
    storage_ok, redis_ok = await asyncio.gather(
        check_storage(storage),
        check_redis(redis_client),
    )

    if storage_ok and redis_ok:
        status = "healthy"
    elif not storage_ok:
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthStatus(status=status, storage=storage_ok, redis=redis_ok)


@router.get("/ready")
async def readiness_probe(
    storage: BaseDocumentStorage = Depends(get_storage),
    redis_client=Depends(get_redis),
) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    health = await health_check(storage, redis_client)
    if health.status == "unhealthy":
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
