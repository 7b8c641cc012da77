"""Comment workflow errors.

Every error carries a human-readable ``message`` (returned to the client for
4xx errors) and a machine ``code`` used to pick the HTTP status.
"""


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SubmissionError(CommentError):
    """A submission failed validation. Always client-caused."""


class BotDetectedError(SubmissionError):
    """The honeypot field was filled in."""

    def __init__(self, message: str = "Bot detected"):
        super().__init__(message, "bot_detected")


class MissingFieldError(SubmissionError):
    """Name or message is empty after trimming."""

    def __init__(self, message: str = "name and message are required"):
        super().__init__(message, "missing_field")


class FieldTooLongError(SubmissionError):
    """A field exceeds its maximum length."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} too long", "field_too_long")


class InvalidFormatError(SubmissionError):
    """A field does not have the expected shape."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} has an invalid format", "invalid_format")


class RateLimitExceededError(CommentError):
    """Too many submissions from one client in the current window."""

    def __init__(
        self,
        retry_after: int = 0,
        message: str = "Too many requests, please try again later.",
    ):
        self.retry_after = retry_after
        super().__init__(message, "rate_limit_exceeded")


class StorageError(CommentError):
    """The database failed. Details stay in the logs."""

    def __init__(self, message: str = "Server error"):
        super().__init__(message, "storage_error")
