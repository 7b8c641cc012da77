"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ADMIN_TOKEN = "change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="commentbox", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )

    # API Server
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=3000, description="API port")
    body_limit_bytes: int = Field(
        default=32 * 1024, description="Maximum accepted request body size"
    )
    trusted_proxies: list[str] = Field(
        default=["127.0.0.1", "::1"],
        description="Peers whose X-Forwarded-For header is believed",
    )

    # Moderation
    admin_token: str = Field(
        default=DEFAULT_ADMIN_TOKEN,
        description="Shared bearer token for the admin endpoints",
    )
    moderation_enabled: bool = Field(
        default=False,
        description="New comments start pending until an admin approves them",
    )

    # Rate limiting (submit path only)
    rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Where submission counters live"
    )
    rate_limit_window_seconds: int = Field(
        default=60, description="Fixed window length"
    )
    rate_limit_max_requests: int = Field(
        default=10, description="Submissions allowed per client per window"
    )
    rate_limit_max_tracked_clients: int = Field(
        default=10_000, description="In-memory limiter key cap"
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./comments.db",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=False, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_to_file: bool = Field(default=True, description="Write rotating log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    origin: str = Field(default="*", description="CORS allowed origin")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def cors_origins(self) -> list[str]:
        """Origins handed to the CORS middleware."""
        return [o.strip() for o in self.origin.split(",") if o.strip()] or ["*"]

    @property
    def admin_token_is_default(self) -> bool:
        """Check if the placeholder admin token was never overridden."""
        return self.admin_token == DEFAULT_ADMIN_TOKEN

    @property
    def comments_auto_approved(self) -> bool:
        """New comments are visible immediately unless moderation is on."""
        return not self.moderation_enabled


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
