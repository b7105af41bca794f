"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="guestbook", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="guestbook", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
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
        default=["/health", "/health/live", "/health/ready", "/uploads"],
        description="Paths to exclude from request logging",
    )

    # Photos
    photo_dir: str = Field(
        default="public/uploads/photos",
        description="Directory where accepted comment photos are stored",
    )
    photo_url_prefix: str = Field(
        default="/uploads/photos", description="URL prefix photos are served from"
    )
    upload_tmp_dir: str = Field(
        default="var/uploads",
        description="Staging directory for uploaded files before relocation",
    )
    photo_max_size_mb: int = Field(
        default=5, description="Maximum photo size in MB"
    )
    photo_allowed_types: list[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        description="Allowed photo MIME types",
    )

    # Spam checking (Akismet)
    akismet_key: str | None = Field(
        default=None, description="Akismet API key (KEEP SECRET!)"
    )
    akismet_endpoint: str = Field(
        default="https://{key}.rest.akismet.com/1.1/comment-check",
        description="Akismet comment-check endpoint template",
    )
    akismet_site_url: str = Field(
        default="https://guestbook.example.com",
        description="Site URL reported to Akismet as 'blog'",
    )
    akismet_is_test: bool = Field(
        default=True, description="Flag requests as test traffic"
    )
    akismet_timeout: float = Field(
        default=5.0, description="Akismet request timeout in seconds"
    )

    # Listing
    comments_per_page: int = Field(
        default=2, ge=1, description="Comments shown per conference page"
    )

    # Rate limiting
    submissions_per_minute: int = Field(
        default=5, description="Maximum comment submissions per minute per IP"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def akismet_configured(self) -> bool:
        """Check if the Akismet spam checker is configured."""
        return bool(self.akismet_key)

    @property
    def photo_max_size_bytes(self) -> int:
        return self.photo_max_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
