"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from coursepass.config import get_settings
from coursepass.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - storage must be wired; Redis is optional."""
    settings = get_settings()
    storage_ready = getattr(request.app.state, "store", None) is not None
    if not storage_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if storage_ready else "starting",
        "storage_backend": settings.storage_backend,
        "cache": get_redis() is not None,
        "environment": settings.environment,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
