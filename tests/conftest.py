"""Shared fixtures: isolated settings, a live app per test, a bare store."""

from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from commentbox.comments.service import CommentStore
from commentbox.config.settings import Settings
from commentbox.core.database import (
    create_engine,
    create_session_factory,
    init_database,
    shutdown_database,
)
from commentbox.main import create_app


ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Build settings that never read .env and use a throwaway database."""

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "_env_file": None,
            "environment": "testing",
            "database_url": f"sqlite+aiosqlite:///{tmp_path / 'comments.db'}",
            "admin_token": ADMIN_TOKEN,
            "moderation_enabled": False,
            "rate_limit_backend": "memory",
            "rate_limit_window_seconds": 60,
            "rate_limit_max_requests": 10,
            "log_level": "WARNING",
            "log_to_file": False,
            "log_requests": False,
        }
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default test settings (auto-approve, 10 submissions/minute)."""
    return settings_factory()


@pytest.fixture
def client_factory() -> Generator[Callable[..., TestClient], None, None]:
    """Start an app for the given settings; every app is shut down afterwards."""
    opened: list[TestClient] = []

    def factory(app_settings: Settings, **client_kwargs: Any) -> TestClient:
        test_client = TestClient(create_app(app_settings), **client_kwargs)
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield factory

    for test_client in reversed(opened):
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(
    settings: Settings, client_factory: Callable[..., TestClient]
) -> TestClient:
    """Test client for an app with default test settings."""
    return client_factory(settings)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Authorization header accepted by the admin endpoints."""
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncGenerator[CommentStore, None]:
    """A comment store on a fresh database, without the HTTP layer."""
    engine = create_engine(settings)
    await init_database(engine)
    yield CommentStore(create_session_factory(engine))
    await shutdown_database(engine)
