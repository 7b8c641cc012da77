"""FastAPI dependencies for the comment API.

Provides dependency injection for:
- Settings, comment store and rate limiter held on ``app.state``
- Admin bearer-token check
- Comment error to HTTP status mapping
"""

import secrets
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status

from commentbox.config.settings import Settings
from commentbox.core.rate_limit import RateLimiter

from .exceptions import CommentError, RateLimitExceededError
from .service import CommentStore


logger = structlog.get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


async def get_comment_store(request: Request) -> CommentStore:
    """Get the comment store from app state.

    Raises:
        HTTPException(503): If startup has not finished initializing storage.
    """
    store = getattr(request.app.state, "comment_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment storage not available",
        )
    return store


async def get_rate_limiter(request: Request) -> RateLimiter:
    """Get the submission rate limiter from app state."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiter not available",
        )
    return limiter


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CommentStoreDep = Annotated[CommentStore, Depends(get_comment_store)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]


async def require_admin(request: Request, settings: SettingsDep) -> None:
    """Check the Authorization header against the admin token.

    The whole header value must equal ``"Bearer " + admin_token`` exactly;
    the comparison is constant-time.

    Raises:
        HTTPException(401): If the header is missing or does not match.
    """
    provided = request.headers.get("authorization", "")
    expected = f"Bearer {settings.admin_token}"

    if not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning(
            "admin_unauthorized",
            path=request.url.path,
            header_present=bool(provided),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
        )


AdminAccess = Depends(require_admin)


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions.

    Server-side failures keep their details out of the response.
    """
    status_map = {
        "bot_detected": status.HTTP_400_BAD_REQUEST,
        "missing_field": status.HTTP_400_BAD_REQUEST,
        "field_too_long": status.HTTP_400_BAD_REQUEST,
        "invalid_format": status.HTTP_400_BAD_REQUEST,
        "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    headers = None
    if isinstance(error, RateLimitExceededError) and error.retry_after > 0:
        headers = {"Retry-After": str(error.retry_after)}

    detail = (
        error.message
        if status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
        else "Server error"
    )
    return HTTPException(status_code=status_code, detail=detail, headers=headers)
