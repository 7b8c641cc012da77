"""Public comment API endpoints.

Provides routes for:
- Listing approved comments of a post, paginated
- Submitting a comment (rate limited, validated, escaped)
"""

import re

import structlog
from fastapi import APIRouter, Body, Request, status

from commentbox.core.middleware import resolve_client_ip

from .dependencies import (
    CommentStoreDep,
    RateLimiterDep,
    SettingsDep,
    handle_comment_error,
)
from .exceptions import CommentError, RateLimitExceededError, SubmissionError
from .schemas import CommentListResponse, CommentSubmission, SubmitCommentResponse
from .service import DEFAULT_LIMIT, DEFAULT_PAGE, clamp_pagination
from .validators import DEFAULT_POST, escape_markup, validate_submission


logger = structlog.get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Rate limiter key when the client address is unknown
UNKNOWN_CLIENT = "unknown"


router = APIRouter(prefix="/api/comments", tags=["comments"])


def parse_int_param(value: str | None, default: int) -> int:
    """Read the leading integer of a query value, ``default`` if there is none.

    ``"3"`` and ``"3abc"`` give 3; ``"abc"``, ``""`` and a missing value give
    ``default``.
    """
    if not value:
        return default
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else default


@router.get(
    "",
    response_model=CommentListResponse,
    summary="List approved comments",
)
async def list_comments(
    store: CommentStoreDep,
    post: str | None = None,
    page: str | None = None,
    limit: str | None = None,
) -> CommentListResponse:
    """Get approved comments for a post, newest first.

    ``page`` is clamped to at least 1 and ``limit`` to 1..50; non-numeric
    values fall back to 1 and 10.
    """
    page_number, page_size = clamp_pagination(
        parse_int_param(page, DEFAULT_PAGE),
        parse_int_param(limit, DEFAULT_LIMIT),
    )

    try:
        items, total = await store.query_approved(
            post or DEFAULT_POST, page_number, page_size
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return CommentListResponse(
        items=items, total=total, page=page_number, limit=page_size
    )


@router.post(
    "",
    response_model=SubmitCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
)
async def submit_comment(
    request: Request,
    store: CommentStoreDep,
    limiter: RateLimiterDep,
    settings: SettingsDep,
    data: CommentSubmission | None = Body(default=None),
) -> SubmitCommentResponse:
    """Submit a new comment.

    Limited per client address. Name and message are stored HTML-escaped.
    The comment is visible immediately unless moderation is enabled.
    """
    client_ip = resolve_client_ip(request, settings.trusted_proxies)

    try:
        if not await limiter.admit(client_ip or UNKNOWN_CLIENT):
            retry_after = await limiter.retry_after(client_ip or UNKNOWN_CLIENT)
            logger.warning("rate_limit_exceeded", retry_after=retry_after)
            raise RateLimitExceededError(retry_after=retry_after)

        data = data or CommentSubmission()
        submission = validate_submission(
            post=data.post,
            name=data.name,
            website=data.website,
            message=data.message,
            hp=data.hp,
        )

        approved = settings.comments_auto_approved
        await store.insert(
            post=submission.post,
            name=escape_markup(submission.name),
            website=submission.website,
            message=escape_markup(submission.message),
            approved=approved,
            ip=client_ip,
            user_agent=request.headers.get("user-agent", ""),
        )
    except CommentError as e:
        if isinstance(e, SubmissionError):
            logger.info("comment_rejected", code=e.code, reason=e.message)
        raise handle_comment_error(e) from e

    return SubmitCommentResponse(ok=True, approved=approved)
