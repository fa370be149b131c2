"""
Storefront API
Centralized Configuration Management

Pydantic settings loaded from environment variables and an optional .env file.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="storefront", alias="database", description="Database name")
    user: str = Field(default="storefront", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    create_tables: bool = Field(default=False, description="Create missing tables on startup")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL - uses DATABASE_URL if set, otherwise asyncpg from parts"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    enabled: bool = Field(default=True, description="Connect to Redis on startup")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """Request identity, rate limiting and CORS"""

    model_config = SettingsConfigDict(env_prefix="")

    # Identity is established by the upstream auth gateway
    user_id_header: str = Field(default="X-User-ID", alias="USER_ID_HEADER", description="Header carrying the caller id")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED", description="Enable rate limiting")
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class StatisticsSettings(BaseSettings):
    """Admin statistics report configuration"""

    model_config = SettingsConfigDict(env_prefix="STATS_")

    recent_orders_limit: int = Field(default=5, description="Orders listed in the report")
    top_products_limit: int = Field(default=5, description="Best sellers listed in the report")
    trend_months: int = Field(default=10, description="Calendar months in the sales trend")
    cache_ttl_seconds: int = Field(default=60, description="Report cache TTL")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-api", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=4, alias="API_WORKERS", description="API workers")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    statistics: StatisticsSettings = Field(default_factory=StatisticsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
