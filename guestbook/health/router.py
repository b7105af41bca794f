"""Health check endpoints."""

from fastapi import APIRouter, Request

from guestbook.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - the database-backed services are wired."""
    settings = get_settings()
    state = request.app.state
    database_ready = getattr(state, "comment_service", None) is not None
    return {
        "status": "ready" if database_ready else "degraded",
        "database": database_ready,
        "rate_limiting": getattr(state, "redis", None) is not None,
        "spam_checking": settings.akismet_configured,
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
