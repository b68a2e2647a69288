"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: PostgresDsn = Field(
        default=...,
        description="PostgreSQL connection URL with asyncpg driver",
    )

    # Redis
    redis_url: RedisDsn = Field(
        default=...,
        description="Redis connection URL (chat rate limiting)",
    )

    # Anthropic (Claude)
    anthropic_api_key: str = Field(
        default=...,
        description="Anthropic API key for Claude",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model used for chat, analysis and reports",
    )

    # Sessions
    jwt_secret_key: str = Field(
        default=...,
        description="Secret used to sign session tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm for session tokens",
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        description="Session token lifetime in minutes",
    )
    auth_cookie_name: str = Field(
        default="auth-token",
        description="Cookie carrying the session token",
    )

    # Admin bootstrap
    admin_username: str | None = Field(
        default=None,
        description="Bootstrap admin username (disabled when unset)",
    )
    admin_password: str | None = Field(
        default=None,
        description="Bootstrap admin password (disabled when unset)",
    )

    # Application
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    app_host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to",
    )
    app_port: int = Field(
        default=8000,
        description="Port uvicorn listens on",
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Rate limits
    chat_rate_limit_per_hour: int = Field(
        default=20,
        description="Chat rate limit per hour per patient",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def admin_bootstrap_enabled(self) -> bool:
        """Admin login is only honoured when both credentials are configured."""
        return bool(self.admin_username and self.admin_password)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()
