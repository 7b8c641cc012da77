"""Pydantic schemas for the comment API.

Request bodies are deliberately loose (``Any`` fields): the submission rules
and their error messages live in ``validators.validate_submission`` so they
are applied in a fixed order with stable messages.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentSubmission(BaseModel):
    """Body of ``POST /api/comments``."""

    model_config = ConfigDict(extra="ignore")

    post: Any = None
    name: Any = None
    website: Any = None
    message: Any = None
    # Honeypot, hidden from humans by the embedding form
    hp: Any = None


class CommentIdRequest(BaseModel):
    """Body of the admin approve/delete endpoints."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class PublicComment(BaseModel):
    """A comment as shown to readers."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    post: str
    name: str
    website: str | None = None
    message: str
    created_at: datetime


class AdminComment(PublicComment):
    """A comment with moderation and origin fields."""

    ip: str | None = None
    user_agent: str | None = None
    approved: bool


class CommentListResponse(BaseModel):
    """One page of approved comments for a post."""

    items: list[PublicComment]
    total: int
    page: int
    limit: int


class AdminCommentListResponse(BaseModel):
    """Most recent comments, all fields, any moderation state."""

    items: list[AdminComment]


class SubmitCommentResponse(BaseModel):
    """Confirmation of a stored submission."""

    ok: bool = True
    approved: bool


class OkResponse(BaseModel):
    """Plain success acknowledgement."""

    ok: bool = True
