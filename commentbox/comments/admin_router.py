"""Admin API routes for comment moderation.

Endpoints for (ADMIN TOKEN ONLY):
- GET /api/admin/comments - Latest comments, all fields
- POST /api/admin/approve - Make a comment publicly visible
- POST /api/admin/delete - Remove a comment
"""

from fastapi import APIRouter, Body

from .dependencies import AdminAccess, CommentStoreDep, handle_comment_error
from .exceptions import CommentError
from .schemas import AdminCommentListResponse, CommentIdRequest, OkResponse
from .service import ADMIN_LIST_LIMIT


router = APIRouter(
    prefix="/api/admin",
    tags=["admin-comments"],
    dependencies=[AdminAccess],
)


@router.get(
    "/comments",
    response_model=AdminCommentListResponse,
    summary="List all comments",
    description="Most recent comments in any moderation state. Admin only.",
)
async def list_all_comments(store: CommentStoreDep) -> AdminCommentListResponse:
    """List the latest comments including pending ones."""
    try:
        items = await store.list_all(ADMIN_LIST_LIMIT)
    except CommentError as e:
        raise handle_comment_error(e) from e

    return AdminCommentListResponse(items=items)


@router.post(
    "/approve",
    response_model=OkResponse,
    summary="Approve comment",
)
async def approve_comment(
    store: CommentStoreDep,
    body: CommentIdRequest | None = Body(default=None),
) -> OkResponse:
    """Approve a comment. Succeeds even when the id does not exist."""
    if body is not None and body.id is not None:
        try:
            await store.approve(body.id)
        except CommentError as e:
            raise handle_comment_error(e) from e

    return OkResponse()


@router.post(
    "/delete",
    response_model=OkResponse,
    summary="Delete comment",
)
async def delete_comment(
    store: CommentStoreDep,
    body: CommentIdRequest | None = Body(default=None),
) -> OkResponse:
    """Delete a comment. Succeeds even when the id does not exist."""
    if body is not None and body.id is not None:
        try:
            await store.delete(body.id)
        except CommentError as e:
            raise handle_comment_error(e) from e

    return OkResponse()
