"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely media backend
using Pydantic Settings. It loads and validates all environment variables
required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection for the video catalog
- S3-compatible object storage for processed media
- Delivery URL strategy (local static files, direct S3, or CDN)
- Bearer JWT validation
- Upload limits and media tooling (ffprobe/ffmpeg)

All settings support environment variable overrides and .env file loading.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BYTES_PER_MB = 1024 * 1024


class DeliveryMode(str, Enum):
    """Strategy used to turn an object-store key into a caller-facing URL."""

    LOCAL = "local"
    S3 = "s3"
    CDN = "cdn"


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely backend.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - MongoDB: Catalog database connection and pool settings
    - S3: Object storage credentials and bucket configuration
    - Delivery: How stored media is addressed by clients
    - Auth: Bearer JWT verification
    - Upload: Size ceilings, scratch directory and media tool binaries

    Example usage:
        ```python
        from app.config import get_settings

        settings = get_settings()
        print(f"Delivering media via: {settings.delivery_mode.value}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="Tubely", description="Application name used in docs and logs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable FastAPI debug mode")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(default=True, description="Emit structured JSON log lines")

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Auth Configuration
    # =========================================================================

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Secret used to verify bearer JWTs. Must be a secure random string.",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_issuer: str = Field(default="tubely-access", description="Expected JWT issuer claim")

    jwt_expiration_hours: int = Field(
        default=1, description="Lifetime of tokens minted by create_access_token", ge=1, le=168
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(default=1, description="Minimum pool connections", ge=0)

    mongodb_max_pool_size: int = Field(default=50, description="Maximum pool connections", ge=1)

    # =========================================================================
    # S3 Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="S3 access key ID (None to use the default AWS chain)"
    )

    s3_secret_access_key: str | None = Field(
        default=None, description="S3 secret access key (None to use the default AWS chain)"
    )

    s3_bucket: str = Field(default="tubely-media", description="Bucket holding processed media")

    s3_region: str = Field(default="us-east-1", description="AWS region of the bucket")

    # =========================================================================
    # Delivery Configuration
    # =========================================================================

    delivery_mode: DeliveryMode = Field(
        default=DeliveryMode.S3,
        description="How delivery URLs are built: local, s3 or cdn",
    )

    cdn_distribution_url: str | None = Field(
        default=None,
        description="Base URL of the CDN distribution fronting the bucket (cdn mode only)",
    )

    asset_host: str = Field(
        default="localhost", description="Host name used in local-mode asset URLs"
    )

    assets_root: str = Field(
        default="./assets", description="Directory mirrored and served at /assets in local mode"
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_thumbnail_upload_mb: int = Field(
        default=10, description="Maximum thumbnail upload size in megabytes", ge=1, le=100
    )

    max_video_upload_mb: int = Field(
        default=1024, description="Maximum video upload size in megabytes (1 GiB)", ge=1
    )

    temp_dir: str | None = Field(
        default=None, description="Scratch directory for staged uploads (None for system default)"
    )

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    media_tool_timeout_seconds: float | None = Field(
        default=None,
        description="Kill ffprobe/ffmpeg after this many seconds (None waits indefinitely)",
        gt=0,
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("delivery_mode", mode="before")
    @classmethod
    def validate_delivery_mode(cls, v: str | DeliveryMode) -> str | DeliveryMode:
        """Accept delivery modes case-insensitively from the environment."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Validate that jwt_algorithm is a supported HMAC algorithm."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(valid_algorithms)}"
            )
        return v.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @model_validator(mode="after")
    def validate_delivery_settings(self) -> "Settings":
        """CDN delivery needs a distribution URL to build links from."""
        if self.delivery_mode == DeliveryMode.CDN and not self.cdn_distribution_url:
            raise ValueError("cdn_distribution_url is required when delivery_mode is 'cdn'")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_thumbnail_upload_bytes(self) -> int:
        """Thumbnail ceiling in bytes."""
        return self.max_thumbnail_upload_mb * BYTES_PER_MB

    @property
    def max_video_upload_bytes(self) -> int:
        """Video ceiling in bytes."""
        return self.max_video_upload_mb * BYTES_PER_MB


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance, loaded once and cached."""
    return Settings()
