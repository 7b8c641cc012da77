"""Async SQLAlchemy engine and schema management.

Provides:
- Engine construction from settings (SQLite through aiosqlite by default)
- Session factory for per-operation transactions
- Idempotent schema creation at startup (CREATE TABLE IF NOT EXISTS)
"""

from pathlib import Path

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from commentbox.config.settings import Settings
from commentbox.core.database.base import Base


logger = structlog.get_logger(__name__)

# Seconds a SQLite connection waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 15


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by ``settings.database_url``."""
    url = make_url(settings.database_url)
    connect_args: dict[str, object] = {}

    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(
        url,
        echo=settings.database_echo,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory handed to the comment store."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_database(engine: AsyncEngine) -> None:
    """Create tables and indexes that do not exist yet.

    Never drops or alters existing objects, so it is safe on every startup.
    """
    # Registers the comments table on Base.metadata
    from commentbox.comments.models import Comment  # noqa: PLC0415

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    logger.info(
        "database_initialized",
        backend=engine.url.get_backend_name(),
        tables=[Comment.__tablename__],
    )


async def ping_database(engine: AsyncEngine) -> bool:
    """Check that the database answers a trivial query."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def shutdown_database(engine: AsyncEngine) -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
    logger.info("database_disconnected")
