"""Application settings and configuration.

This module defines all configuration options for the Ventbuddy service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Ventbuddy", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./ventbuddy.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Content storage
    content_encryption_key: str | None = Field(default=None, alias="CONTENT_ENCRYPTION_KEY")
    preview_length: int = Field(default=100, alias="PREVIEW_LENGTH")
    max_content_length: int = Field(default=5000, alias="MAX_CONTENT_LENGTH")

    # Visibility cache and change feed
    visibility_cache_ttl_seconds: float = Field(
        default=300.0,
        alias="VISIBILITY_CACHE_TTL_SECONDS",
    )
    change_feed_enabled: bool = Field(default=False, alias="CHANGE_FEED_ENABLED")
    change_feed_poll_interval_seconds: float = Field(
        default=2.0,
        alias="CHANGE_FEED_POLL_INTERVAL_SECONDS",
    )
    change_feed_batch_size: int = Field(default=100, alias="CHANGE_FEED_BATCH_SIZE")
    # Ids below the cursor re-read each poll to catch rows committed out of id order.
    change_feed_overlap: int = Field(default=50, ge=0, alias="CHANGE_FEED_OVERLAP")

    # Encryption service
    encryption_service_url: str | None = Field(default=None, alias="ENCRYPTION_SERVICE_URL")
    encryption_http_timeout_seconds: float = Field(
        default=15.0,
        alias="ENCRYPTION_HTTP_TIMEOUT_SECONDS",
    )

    # Ledger gateway
    ledger_gateway_url: str | None = Field(default=None, alias="LEDGER_GATEWAY_URL")
    ledger_contract_address: str | None = Field(default=None, alias="LEDGER_CONTRACT_ADDRESS")
    ledger_http_timeout_seconds: float = Field(
        default=120.0,
        alias="LEDGER_HTTP_TIMEOUT_SECONDS",
    )
    ledger_receipt_poll_seconds: float = Field(
        default=2.0,
        alias="LEDGER_RECEIPT_POLL_SECONDS",
    )
    # Derive a record id from the receipt when the creation event cannot be parsed.
    ledger_allow_fallback_ids: bool = Field(default=True, alias="LEDGER_ALLOW_FALLBACK_IDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for Alembic and scripts."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
