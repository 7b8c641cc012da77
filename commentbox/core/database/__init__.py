"""Database connection module for commentbox."""

from commentbox.core.database.base import Base
from commentbox.core.database.engine import (
    create_engine,
    create_session_factory,
    init_database,
    ping_database,
    shutdown_database,
)


__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "init_database",
    "ping_database",
    "shutdown_database",
]
