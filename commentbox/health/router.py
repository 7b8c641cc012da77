"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import SQLAlchemyError

from commentbox.core.database import ping_database
from commentbox.core.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, str | bool] | ORJSONResponse:
    """Readiness probe - the schema exists and the database answers."""
    settings = request.app.state.settings
    engine = getattr(request.app.state, "engine", None)

    database_ok = False
    if engine is not None:
        try:
            database_ok = await ping_database(engine)
        except SQLAlchemyError as e:
            logger.warning("readiness_database_failed", error=str(e))

    body: dict[str, str | bool] = {
        "status": "ready" if database_ok else "unavailable",
        "database": database_ok,
        "environment": settings.environment,
        "moderation_enabled": settings.moderation_enabled,
    }
    if not database_ok:
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body
        )
    return body


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
