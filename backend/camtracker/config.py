# backend/camtracker/config.py
from pathlib import Path
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants
from .enums import LogLevel


def get_project_root() -> Path:
    """Get project root directory - ONLY use for initial config setup"""
    return Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    environment: str = "development"
    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/camtracker",
        description="PostgreSQL connection string",
    )
    db_pool_min_size: int = Field(
        default=2, ge=1, le=50, description="Minimum pooled connections"
    )
    db_pool_size: int = Field(
        default=10, ge=1, le=100, description="Database connection pool size"
    )
    db_pool_timeout: int = Field(
        default=30,
        ge=5,
        le=300,
        description="Database connection timeout in seconds",
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host to bind to")
    api_port: int = Field(
        default=8000, ge=1, le=65535, description="API port to bind to"
    )
    api_reload: bool = Field(
        default=False, description="Enable auto-reload for development"
    )

    # CORS - use Union to handle both string and list inputs
    # Can be set via CORS_ORIGINS env var as comma-separated string
    cors_origins: Union[str, List[str]] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins. Can be comma-separated string.",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert cors_origins to a list of strings"""
        if isinstance(self.cors_origins, str):
            return [origin.strip() for origin in self.cors_origins.split(",")]
        return self.cors_origins

    # ============= PATH CONFIGURATION =============
    # All file operations MUST use these settings

    data_directory: str = "./data"

    @property
    def data_path(self) -> Path:
        """Get data directory as Path object"""
        return Path(self.data_directory)

    @property
    def cache_directory(self) -> Path:
        """Content-addressed image cache (served at /cached-images)"""
        return self.data_path / "cache" / "images"

    @property
    def uploads_directory(self) -> Path:
        """Uploaded and generated assets (served at /uploads)"""
        return self.data_path / "uploads"

    @property
    def default_images_directory(self) -> Path:
        """Transcoded default images"""
        return self.uploads_directory / "default-images"

    @property
    def placeholders_directory(self) -> Path:
        return self.uploads_directory / "placeholders"

    @property
    def logs_directory(self) -> Path:
        """Logs subdirectory path"""
        return self.data_path / "logs"

    def ensure_directories(self):
        """Create all required directories if they don't exist"""
        directories = [
            self.data_path,
            self.cache_directory,
            self.uploads_directory,
            self.default_images_directory,
            self.placeholders_directory,
            self.logs_directory,
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    # Job queue
    queue_max_concurrency: int = Field(
        default=constants.DEFAULT_MAX_CONCURRENCY,
        ge=1,
        le=20,
        description="Maximum jobs running at the same time",
    )
    queue_max_retries: int = Field(
        default=constants.DEFAULT_MAX_RETRIES,
        ge=0,
        le=10,
        description="Retries after the first attempt before a job fails",
    )
    queue_retry_delay_seconds: float = Field(
        default=constants.DEFAULT_RETRY_DELAY_SECONDS,
        ge=0,
        le=600,
        description="Fixed delay before a failed job is eligible again",
    )
    queue_job_timeout_seconds: float = Field(
        default=constants.DEFAULT_JOB_TIMEOUT_SECONDS,
        gt=0,
        le=3600,
        description="Per-job wall-clock budget in seconds",
    )
    queue_cleanup_interval_seconds: int = Field(
        default=constants.JOB_CLEANUP_INTERVAL_SECONDS,
        ge=10,
        le=86400,
        description="How often terminal jobs are garbage-collected",
    )
    queue_retention_hours: int = Field(
        default=constants.JOB_RETENTION_HOURS,
        ge=1,
        le=720,
        description="Terminal jobs older than this are removed",
    )
    queue_autostart: bool = Field(
        default=True, description="Start the dispatch loop on application startup"
    )

    # Image cache
    cache_max_age_days: int = Field(
        default=constants.CACHE_MAX_AGE_DAYS,
        ge=1,
        le=365,
        description="Cached files older than this are considered expired",
    )
    cache_cleanup_interval_hours: int = Field(
        default=24,
        ge=1,
        le=168,
        description="Interval for the scheduled cleanup-cache job",
    )
    cache_cleanup_enabled: bool = Field(
        default=True, description="Schedule periodic cache cleanup jobs"
    )

    # Wikimedia Commons
    wikimedia_api_url: str = Field(
        default=constants.WIKIMEDIA_API_URL, description="Commons API endpoint"
    )
    wikimedia_user_agent: str = Field(
        default=constants.WIKIMEDIA_USER_AGENT,
        description="Descriptive User-Agent required by Wikimedia",
    )

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path (optional)"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v) -> LogLevel:
        """Validate log level is one of the allowed values"""
        if isinstance(v, LogLevel):
            return v
        allowed_levels = LogLevel.__members__.keys()
        v_upper = str(v).upper()
        if v_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(allowed_levels)}"
            )
        return LogLevel[v_upper]

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values"""
        allowed_envs = ["development", "staging", "production", "test"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(allowed_envs)}"
            )
        return v_lower

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global settings instance
settings = Settings()
