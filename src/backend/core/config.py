"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCATION_SOURCES = ("catalog", "assignment", "delegate")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Vigia"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    # Database - PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "vigia"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "vigia"
    POSTGRES_SSL: bool = False

    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts
    DATABASE_URL: str | None = None
    DB_POOL_SIZE: int = 10
    DB_ECHO: bool = False

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @property
    def POSTGRES_URL(self) -> str:
        """Construct the asyncpg connection URL."""
        url = (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )
        return f"{url}?ssl=require" if self.POSTGRES_SSL else url

    @property
    def database_url(self) -> str:
        """Effective database URL."""
        return self.DATABASE_URL or self.POSTGRES_URL

    # Authentication (tokens are issued by the identity service)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Schema capabilities
    # "v1" (legacy), "v2" (catalog links) or "v3" (full). Unset = inspect the live schema once at startup.
    SCHEMA_VERSION: str | None = None

    # Vote reports
    # Order in which location fields are resolved for a report
    LOCATION_RESOLUTION_ORDER: str = "catalog,assignment,delegate"
    REQUIRE_REPORT_PHOTO: bool = False

    @field_validator("LOCATION_RESOLUTION_ORDER")
    @classmethod
    def validate_resolution_order(cls, v: str) -> str:
        """Only known location sources may be listed."""
        sources = [part.strip() for part in v.split(",") if part.strip()]
        unknown = [s for s in sources if s not in LOCATION_SOURCES]
        if unknown or not sources:
            raise ValueError(f"LOCATION_RESOLUTION_ORDER has unknown sources: {unknown or v!r}")
        return ",".join(sources)

    @property
    def location_resolution_order(self) -> tuple[str, ...]:
        """Get the location resolution order as a tuple."""
        return tuple(self.LOCATION_RESOLUTION_ORDER.split(","))

    # Compliance / war room
    COMPLIANCE_LIST_LIMIT: int = 500
    WARROOM_FEED_LIMIT: int = 20
    WARROOM_EVIDENCE_LIMIT: int = 24
    WARROOM_MUNICIPALITY_LIMIT: int = 60
    COVERAGE_GREEN_THRESHOLD: int = 85
    COVERAGE_YELLOW_THRESHOLD: int = 50
    REPORT_LIST_LIMIT: int = 300

    # War-room live updates
    WARROOM_STREAM_KEEPALIVE_SECONDS: int = 25
    WARROOM_STREAM_QUEUE_SIZE: int = 100


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
