"""
Configuration management for Enqor Media.

This module provides:
- Pydantic Settings for environment variable loading
- Structured configuration classes for the app, media engine and storage
- Validation and type safety for configuration values
- Default values and environment-specific overrides
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class AppConfig(BaseSettings):
    """Main application configuration."""
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # App metadata
    app_name: str = Field(default="Enqor Media", validation_alias="APP_NAME")
    version: str = Field(default="1.0.0", validation_alias="APP_VERSION")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=True, validation_alias="DEBUG")

    # API settings
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")
    api_workers: int = Field(default=1, validation_alias="API_WORKERS")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ['development', 'testing', 'staging', 'production']
        if v not in allowed:
            raise ValueError(f'Environment must be one of: {allowed}')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed:
            raise ValueError(f'Log level must be one of: {allowed}')
        return v.upper()

    @property
    def is_development(self) -> bool:
        return self.environment == 'development'

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'


class MediaConfig(BaseSettings):
    """Media transform engine configuration."""
    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        case_sensitive=False,
        extra="ignore"
    )

    # Initial encode quality
    default_quality: float = Field(default=0.92)
    large_source_quality: float = Field(default=0.75)
    large_source_threshold_bytes: int = Field(default=10 * MIB)

    # Second (and last) encode pass
    hard_ceiling_bytes: int = Field(default=10 * MIB)
    fallback_quality: float = Field(default=0.6)
    enforce_format_max_bytes: bool = Field(default=True)

    # Results below this size are handed out as data URIs
    inline_url_threshold_bytes: int = Field(default=5 * MIB)
    output_format: str = Field(default="JPEG")
    handle_dir: str | None = Field(default=None)

    # Video thumbnail
    video_thumbnail_position: float = Field(default=1.0)
    video_thumbnail_quality: float = Field(default=0.8)
    ffmpeg_binary: str = Field(default="ffmpeg")
    ffprobe_binary: str = Field(default="ffprobe")
    probe_timeout: int = Field(default=60)

    # HTTP upload guard
    max_upload_size_mb: int = Field(default=300, validation_alias="MAX_UPLOAD_SIZE_MB")

    @field_validator(
        'default_quality', 'large_source_quality', 'fallback_quality', 'video_thumbnail_quality'
    )
    @classmethod
    def validate_quality(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError('Quality must be in the range (0, 1]')
        return v

    @field_validator('output_format')
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        allowed = ['JPEG', 'WEBP']
        if v.upper() not in allowed:
            raise ValueError(f'Output format must be one of: {allowed}')
        return v.upper()


class S3Config(BaseSettings):
    """S3/MinIO storage configuration."""
    model_config = SettingsConfigDict(
        env_prefix="S3_",
        case_sensitive=False,
        extra="ignore"
    )

    endpoint: str = Field(default="http://localhost:9000")
    access_key: str = Field(default="minioadmin")
    secret_key: SecretStr = Field(default="minioadmin123")
    bucket_name: str = Field(default="enqor-media")
    region: str = Field(default="us-east-1")
    public_base_url: str | None = Field(default=None)

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if not v.startswith(('http://', 'https://')):
            raise ValueError('S3 endpoint must start with http:// or https://')
        return v


class Settings:
    """Main settings container with all configuration sections."""

    def __init__(self):
        self.app = AppConfig()
        self.media = MediaConfig()
        self.s3 = S3Config()


# Global settings instance
settings = Settings()


def get_test_settings() -> Settings:
    """Get test-specific settings with overrides. The process environment is left untouched."""
    test_settings = Settings()

    # Override with test values
    test_settings.app = test_settings.app.model_copy(update={"environment": "testing", "debug": True})
    test_settings.s3 = test_settings.s3.model_copy(update={"bucket_name": "test-bucket"})

    return test_settings
