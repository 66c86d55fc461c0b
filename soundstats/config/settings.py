"""Configuration management using Pydantic Settings.

Settings are loaded from environment variables and an optional .env file and
grouped by concern:
- DatabaseConfig: Database connection settings
- LoggingConfig: Logging levels, files, and debugging options
- CredentialsConfig: Spotify client credentials and identity provider keys
- APIConfig: External API batch sizes, retries and timeouts
- IngestionConfig: Live polling and upload import thresholds
- AnalyticsConfig: Streak and leaderboard thresholds and result caching
- SchedulerConfig: Task lease and polling cadence
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///data/soundstats.db"
    echo: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration for console and file output."""

    console_level: str = "INFO"
    file_level: str = "DEBUG"
    log_file: Path = Path("logs/soundstats.log")
    real_time_debug: bool = True


class CredentialsConfig(BaseModel):
    """API credentials and authentication settings."""

    # Spotify app credentials (client-credentials flow for catalog lookups)
    spotify_client_id: str = ""
    spotify_client_secret: str = ""

    # Identity provider holding per-user Spotify OAuth tokens
    clerk_secret_key: str = ""
    clerk_api_url: str = "https://api.clerk.com/v1"


class APIConfig(BaseModel):
    """External API configuration and rate limiting."""

    spotify_tracks_batch_size: int = 50
    spotify_retry_count: int = 3
    spotify_retry_max_delay: float = 30.0
    spotify_market: str = "US"

    clerk_retry_count: int = 3

    request_timeout: float = 10.0


class IngestionConfig(BaseModel):
    """Thresholds and limits for the live and bulk reconcilers."""

    min_listen_ms: int = 20_000
    finished_ratio: float = 0.8
    short_track_ms: int = 60_000

    live_concurrency: int = 5
    user_delay_max_ms: int = 10_000

    upload_batch_size: int = 10
    catalog_chunk_size: int = 50
    fuzzy_min_score: float = 80.0


class AnalyticsConfig(BaseModel):
    """Streak and leaderboard configuration."""

    qualifying_ms: int = 30_000
    default_limit: int = 10
    cache_ttl_seconds: float = 60.0
    cache_max_entries: int = 1024


class SchedulerConfig(BaseModel):
    """Scheduled task cadence and mutual exclusion."""

    lease_ttl_seconds: int = 300
    premium_interval_seconds: int = 30
    standard_interval_seconds: int = 60
    uploads_cron: str = "0 * * * *"


class Settings(BaseSettings):
    """Main application settings with environment variable support.

    Environment variables can be set using flat naming or nested naming:
    - Flat: DATABASE_URL, CONSOLE_LOG_LEVEL, SPOTIFY_CLIENT_ID
    - Nested: DATABASE__URL, LOGGING__CONSOLE_LEVEL, INGESTION__LIVE_CONCURRENCY

    The .env file is automatically loaded for development convenience.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    api: APIConfig = APIConfig()
    ingestion: IngestionConfig = IngestionConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    scheduler: SchedulerConfig = SchedulerConfig()

    data_dir: Path = Path("data")

    @model_validator(mode="before")
    @classmethod
    def transform_flat_env_vars(cls, data: Any) -> Any:
        """Transform flat environment variables to nested structure.

        Maps flat env vars (DATABASE_URL, CLERK_SECRET_KEY) onto the nested
        groups expected by the models (database.url, credentials.clerk_secret_key).
        """
        if not isinstance(data, dict):
            return data

        mappings = {
            "database": {
                "database_url": "url",
                "database_echo": "echo",
            },
            "logging": {
                "console_log_level": "console_level",
                "file_log_level": "file_level",
                "log_file": "log_file",
                "log_real_time_debug": "real_time_debug",
            },
            "credentials": {
                "spotify_client_id": "spotify_client_id",
                "spotify_client_secret": "spotify_client_secret",
                "clerk_secret_key": "clerk_secret_key",
                "clerk_api_url": "clerk_api_url",
            },
        }

        transformed: dict[str, dict[str, Any]] = {}
        for group, group_mapping in mappings.items():
            for env_key, field_key in group_mapping.items():
                if env_key in data:
                    transformed.setdefault(group, {})[field_key] = data.pop(env_key)

        for group, values in transformed.items():
            existing = data.get(group)
            if isinstance(existing, dict):
                values = {**existing, **values}
            data[group] = values

        return data


# Singleton instance for application use
settings = Settings()

settings.data_dir.mkdir(exist_ok=True)
