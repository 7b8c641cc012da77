"""Database model for the comment table.

One row per submitted comment. ``name`` and ``message`` hold markup-escaped
text; ``ip`` and ``user_agent`` are only ever returned by the admin listing.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from commentbox.core.database.base import Base


POST_MAX_LENGTH = 256
NAME_MAX_LENGTH = 60
MESSAGE_MAX_LENGTH = 3000


class Comment(Base):
    """A comment scoped to a post identifier."""

    __tablename__ = "comments"
    # AUTOINCREMENT keeps ids strictly increasing, never reusing deleted ones
    __table_args__ = (
        Index("ix_comments_post_approved_id", "post", "approved", "id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post: Mapped[str] = mapped_column(String(POST_MAX_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    def __repr__(self) -> str:
        return f"<Comment id={self.id} post={self.post!r} approved={self.approved}>"
