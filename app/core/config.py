"""
Centralized configuration management.

- All secrets (DB URLs, JWT keys) MUST come from environment variables or a
  secure secret store (never hardcoded)
- Centralize configuration in this module
- Do not spread os.getenv calls all over the codebase
- Do not log secrets or environment values
"""
from __future__ import annotations
from typing import Literal
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Postgres ---
    PG_HOST: str = Field(..., description="PostgreSQL host")
    PG_PORT: int = Field(default=5432, description="PostgreSQL port")
    PG_DB: str = Field(..., description="PostgreSQL database name")
    PG_USER: str = Field(..., description="PostgreSQL user")
    PG_PASSWORD: str = Field(..., description="PostgreSQL password")
    PG_SSLMODE: str = Field(default="require", description="PostgreSQL SSL mode (require/disable)")
    PG_SCHEMA: str = Field(default="public", description="PostgreSQL search_path")
    PG_POOL_MIN: int = Field(default=1, ge=1, description="Minimum pooled connections")
    PG_POOL_MAX: int = Field(default=10, ge=1, description="Maximum pooled connections")

    # --- JWT ---
    JWT_ACCESS_SECRET: str = Field(..., min_length=16, description="Access token signing secret")
    JWT_REFRESH_SECRET: str = Field(..., min_length=16, description="Refresh token signing secret")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    JWT_ACCESS_TTL_SEC: int = Field(default=15 * 60, gt=0, description="Access token lifetime in seconds")
    JWT_REFRESH_TTL_SEC: int = Field(default=7 * 24 * 3600, gt=0, description="Refresh token lifetime in seconds")

    # --- Passwords ---
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31, description="bcrypt cost factor")

    # --- Permission cache ---
    PERMISSION_CACHE_BACKEND: Literal["redis", "memory"] = Field(
        default="redis", description="Where per-user permission maps are cached"
    )
    PERMISSION_CACHE_TTL_SEC: int = Field(default=60, gt=0, description="Permission map cache TTL")
    TENANT_CACHE_TTL_SEC: int = Field(default=300, gt=0, description="Active tenant lookup cache TTL")

    # --- Redis/Valkey ---
    REDIS_HOST: str = Field(default="redis", description="Redis host")
    REDIS_PORT: int = Field(default=6379, description="Redis port")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password")
    REDIS_SSL: str = Field(default="false", description="Redis SSL enabled (true/false)")

    # --- App ---
    APP_NAME: str = Field(default="Vivero API", description="Service name shown in OpenAPI")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    CORS_ORIGINS: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _distinct_jwt_secrets(self) -> "Settings":
        # A refresh token must never verify as an access token.
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return self

    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
