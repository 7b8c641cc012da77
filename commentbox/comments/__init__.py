"""Comment module.

Provides a flat, post-scoped comment system with:
- Submission validation and store-time markup escaping
- Approved-only public listing with page/limit pagination
- Token-gated moderation (list all, approve, delete)

Note: Routers are not exported here to avoid circular imports.
Import directly from commentbox.comments.router / admin_router when needed.
"""

from .exceptions import (
    BotDetectedError,
    CommentError,
    FieldTooLongError,
    InvalidFormatError,
    MissingFieldError,
    RateLimitExceededError,
    StorageError,
    SubmissionError,
)
from .models import Comment
from .service import CommentStore
from .validators import NormalizedSubmission, escape_markup, validate_submission


__all__ = [
    "BotDetectedError",
    "Comment",
    "CommentError",
    "CommentStore",
    "FieldTooLongError",
    "InvalidFormatError",
    "MissingFieldError",
    "NormalizedSubmission",
    "RateLimitExceededError",
    "StorageError",
    "SubmissionError",
    "escape_markup",
    "validate_submission",
]
