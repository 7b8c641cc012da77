"""Comment storage layer.

``CommentStore`` owns every read and write of the ``comments`` table. Each
operation runs in its own transaction, so a failure never leaves a partial
row behind, and database errors surface as ``StorageError``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .exceptions import StorageError
from .models import Comment
from .schemas import AdminComment, PublicComment


logger = structlog.get_logger(__name__)


# Pagination bounds for the public listing
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50
# Keeps (page - 1) * limit inside a signed 64-bit OFFSET
MAX_PAGE = (2**63 - 1) // MAX_LIMIT

# Rows returned by the admin listing
ADMIN_LIST_LIMIT = 500


def clamp_pagination(page: int, limit: int) -> tuple[int, int]:
    """Clamp ``page`` to [1, MAX_PAGE] and ``limit`` to [1, MAX_LIMIT]."""
    return min(MAX_PAGE, max(1, page)), min(MAX_LIMIT, max(1, limit))


class CommentStore:
    """Durable comment table with the queries the API needs."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with an async session factory bound to the engine."""
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.exception("storage_error", operation=operation, error=str(e))
            raise StorageError from e

    async def insert(
        self,
        *,
        post: str,
        name: str,
        website: str | None,
        message: str,
        approved: bool,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> int:
        """Persist a new comment and return its id.

        The id and ``created_at`` are assigned here; callers never supply them.
        """
        comment = Comment(
            post=post,
            name=name,
            website=website,
            message=message,
            created_at=datetime.now(UTC),
            ip=ip or None,
            user_agent=user_agent or None,
            approved=approved,
        )

        async with self._transaction("insert") as session:
            session.add(comment)
            await session.flush()
            comment_id = comment.id

        logger.info(
            "comment_created",
            comment_id=comment_id,
            post=post,
            approved=approved,
        )
        return comment_id

    async def query_approved(
        self,
        post: str,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> tuple[list[PublicComment], int]:
        """Get one page of approved comments for ``post``, newest first.

        Returns:
            The page items and the number of approved comments for the post.
        """
        page, limit = clamp_pagination(page, limit)
        offset = (page - 1) * limit
        visible = (Comment.post == post) & Comment.approved.is_(True)

        async with self._transaction("query_approved") as session:
            total = await session.scalar(
                select(func.count()).select_from(Comment).where(visible)
            )
            if not total or offset >= total:
                return [], total or 0
            rows = await session.scalars(
                select(Comment)
                .where(visible)
                .order_by(Comment.id.desc())
                .limit(limit)
                .offset(offset)
            )
            items = [PublicComment.model_validate(row) for row in rows]

        return items, total or 0

    async def list_all(self, limit: int = ADMIN_LIST_LIMIT) -> list[AdminComment]:
        """Get the most recent comments in any moderation state."""
        async with self._transaction("list_all") as session:
            rows = await session.scalars(
                select(Comment).order_by(Comment.id.desc()).limit(max(0, limit))
            )
            return [AdminComment.model_validate(row) for row in rows]

    async def approve(self, comment_id: int) -> None:
        """Mark a comment approved. Unknown ids are ignored."""
        async with self._transaction("approve") as session:
            result = await session.execute(
                update(Comment).where(Comment.id == comment_id).values(approved=True)
            )

        logger.info(
            "comment_approved", comment_id=comment_id, found=result.rowcount > 0
        )

    async def delete(self, comment_id: int) -> None:
        """Remove a comment. Unknown ids are ignored."""
        async with self._transaction("delete") as session:
            result = await session.execute(
                delete(Comment).where(Comment.id == comment_id)
            )

        logger.info("comment_deleted", comment_id=comment_id, found=result.rowcount > 0)
