"""Submission validation and markup escaping.

Validation runs on the raw submitted values; escaping is applied afterwards to
``name`` and ``message`` only, once, right before storage.
"""

import math
import re
from typing import Any, NamedTuple

from .exceptions import (
    BotDetectedError,
    FieldTooLongError,
    InvalidFormatError,
    MissingFieldError,
)
from .models import MESSAGE_MAX_LENGTH, NAME_MAX_LENGTH, POST_MAX_LENGTH


DEFAULT_POST = "/"

WEBSITE_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

_MARKUP_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)


class NormalizedSubmission(NamedTuple):
    """A submission that passed validation, not yet escaped."""

    post: str
    name: str
    website: str | None
    message: str


def escape_markup(text: str) -> str:
    """Replace ``& < > " '`` with their HTML entities.

    Existing entities are not recognised, so ``&amp;`` becomes ``&amp;amp;``.

    Examples:
        >>> escape_markup("<b>Tom & 'Jerry'</b>")
        '&lt;b&gt;Tom &amp; &#39;Jerry&#39;&lt;/b&gt;'
    """
    return text.translate(_MARKUP_ESCAPES)


def as_text(value: Any) -> str:
    """Coerce a loosely-typed JSON value to text.

    Missing and falsy values (None, False, 0, "") become an empty string,
    strings pass through and other scalars use their JSON spelling.
    """
    if isinstance(value, str):
        return value
    if not value:
        return ""
    if value is True:
        return "true"
    return str(value)


def is_filled(value: Any) -> bool:
    """Tell whether a loosely-typed JSON value counts as filled in.

    Containers count even when empty; None, False, 0, NaN and "" do not.
    """
    if isinstance(value, (dict, list)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def validate_submission(
    post: Any = None,
    name: Any = None,
    website: Any = None,
    message: Any = None,
    hp: Any = None,
) -> NormalizedSubmission:
    """Validate and normalize a comment submission.

    Rules are checked in order and the first failure is raised.

    Raises:
        BotDetectedError: honeypot field is filled in.
        MissingFieldError: name or message empty after trimming.
        FieldTooLongError: name over 60 or message over 3000 characters.
        InvalidFormatError: website present but not http(s).
    """
    if is_filled(hp):
        raise BotDetectedError

    clean_name = as_text(name).strip()
    clean_message = as_text(message).strip()
    if not clean_name or not clean_message:
        raise MissingFieldError

    if len(clean_name) > NAME_MAX_LENGTH:
        raise FieldTooLongError("name")
    if len(clean_message) > MESSAGE_MAX_LENGTH:
        raise FieldTooLongError("message")

    clean_website = as_text(website).strip() or None
    if clean_website and not WEBSITE_PATTERN.match(clean_website):
        raise InvalidFormatError("website", "website must be http(s)")

    clean_post = as_text(post).strip() or DEFAULT_POST

    return NormalizedSubmission(
        post=clean_post[:POST_MAX_LENGTH],
        name=clean_name,
        website=clean_website,
        message=clean_message,
    )
