"""CoursePass settings, read from the environment and an optional ``.env``."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the access engine and its HTTP surface."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service identity
    app_name: str = Field(default="coursepass", description="Service name in logs")
    app_version: str = Field(default="0.1.0", description="Reported by /health")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=True, description="Expose error details in 500s")

    # Ledger persistence
    storage_backend: Literal["memory", "cassandra"] = Field(
        default="memory", description="Where users, ownerships and grants are kept"
    )
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra contact points"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra native port")
    cassandra_keyspace: str = Field(
        default="coursepass", description="Keyspace holding the ledger tables"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(
        default=4, description="Native protocol version (LWT needs >= 2)"
    )
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Seconds to wait for the cluster"
    )

    # Owner-access cache
    redis_enabled: bool = Field(
        default=True, description="Cache owner-access decisions in Redis"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    redis_max_connections: int = Field(default=10, description="Redis pool size")
    redis_socket_timeout: float = Field(default=5.0, description="Redis read timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(
        default=True, description="Retry a Redis call once on timeout"
    )
    redis_health_check_interval: int = Field(
        default=30, description="Seconds between Redis pool health checks"
    )
    access_cache_ttl_seconds: int = Field(
        default=300, gt=0, description="TTL for cached owner-access decisions"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Minimum level for console and files"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Console renderer outside production"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Add module, function and line to events"
    )
    log_dir: str = Field(default="logs", description="Directory for JSON log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate a log file past this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log request start and finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Probe paths kept out of request logs",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="Allowed origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow cookies")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="Preflight cache seconds")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"

    @property
    def uses_cassandra(self) -> bool:
        """True when the ledger lives in Cassandra rather than in process."""
        return self.storage_backend == "cassandra"


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
