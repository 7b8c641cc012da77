"""commentbox API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from commentbox.comments.admin_router import router as comments_admin_router
from commentbox.comments.router import router as comments_router
from commentbox.comments.service import CommentStore
from commentbox.config import Settings, get_settings
from commentbox.core.database import (
    create_engine,
    create_session_factory,
    init_database,
    shutdown_database,
)
from commentbox.core.logging import configure_structlog, get_logger
from commentbox.core.middleware import BodySizeLimitMiddleware, RequestContextMiddleware
from commentbox.core.rate_limit import build_rate_limiter
from commentbox.health.router import router as health_router


logger = get_logger(__name__)

SERVER_ERROR_MESSAGE = "Server error"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Storage is initialized before the app serves anything; a failure here
    aborts startup instead of running without a database.
    """
    settings: Settings = app.state.settings
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        moderation_enabled=settings.moderation_enabled,
    )

    if settings.admin_token_is_default:
        logger.warning(
            "admin_token_default",
            message="ADMIN_TOKEN is the placeholder value; set it before deploying",
        )

    engine = create_engine(settings)
    await init_database(engine)
    app.state.engine = engine
    app.state.comment_store = CommentStore(create_session_factory(engine))
    logger.info("comment_store_initialized")

    app.state.rate_limiter = await build_rate_limiter(settings)

    logger.info("api_listening", url=f"http://localhost:{settings.port}")

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app.state.rate_limiter.close()
    await shutdown_database(engine)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)

    # debug stays off so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Comment hosting API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.body_limit_bytes)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Added last so it is the outermost middleware
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        trusted_proxies=settings.trusted_proxies,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Render HTTP errors as ``{"error": message}``."""
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            message = SERVER_ERROR_MESSAGE
        else:
            message = str(exc.detail)

        return ORJSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Reject bodies that are not the expected JSON object."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all for unhandled exceptions; details only go to the logs."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": SERVER_ERROR_MESSAGE},
        )

    app.include_router(health_router)
    app.include_router(comments_router)
    app.include_router(comments_admin_router)

    return app
