"""
Application settings and configuration management.

Loads environment variables and provides typed access to configuration values.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


# Load .env file at module import time
load_dotenv()


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults or will raise validation errors
    if required values are missing.
    """

    # MongoDB Configuration
    mongodb_uri: str = Field(
        ...,
        alias="MONGODB_URI",
        description="MongoDB connection string"
    )
    mongodb_database_name: str = Field(
        default="research_stats",
        alias="MONGODB_DATABASE_NAME",
        description="Name of the MongoDB database"
    )

    # Application Configuration
    app_host: str = Field(
        default="0.0.0.0",
        alias="APP_HOST",
        description="Host address for the FastAPI server"
    )
    app_port: int = Field(
        default=8000,
        alias="APP_PORT",
        description="Port number for the FastAPI server"
    )
    app_title: str = Field(
        default="ResearchStats",
        description="Application title"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    expose_error_details: bool = Field(
        default=False,
        alias="EXPOSE_ERROR_DETAILS",
        description="Include exception text in 500 responses (development only)"
    )

    # Statistics cache
    stats_cache_ttl_seconds: float = Field(
        default=3600.0,
        gt=0,
        alias="STATS_CACHE_TTL_SECONDS",
        description="Lifetime of a cached statistics bundle"
    )
    stats_cache_sweep_interval_seconds: float = Field(
        default=600.0,
        gt=0,
        alias="STATS_CACHE_SWEEP_INTERVAL_SECONDS",
        description="Interval between proactive sweeps of expired cache entries"
    )

    # Authentication
    auth_token_expiry_hours: int = Field(
        default=24,
        description="Lifetime of a login token in hours"
    )
    login_rate_limit: str = Field(
        default="10/minute",
        description="slowapi rate limit applied to the login endpoint"
    )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once per process.

    Returns:
        Settings: Application configuration object
    """
    return Settings()
