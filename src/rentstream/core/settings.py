"""Application settings and configuration.

This module defines all configuration options for the RentStream application.
Settings are loaded from environment variables with sensible defaults.
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the RentStream application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="RentStream", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    auth_nonce_ttl_seconds: int = Field(default=300, alias="AUTH_NONCE_TTL_SECONDS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./rentstream.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Entity store (segment payloads and linked metadata records)
    entity_store_backend: Literal["http", "memory"] = Field(
        default="memory",
        alias="ENTITY_STORE_BACKEND",
    )
    entity_store_url: str | None = Field(default=None, alias="ENTITY_STORE_URL")
    entity_store_api_key: str | None = Field(default=None, alias="ENTITY_STORE_API_KEY")
    entity_store_timeout_seconds: float = Field(
        default=15.0,
        alias="ENTITY_STORE_TIMEOUT_SECONDS",
    )
    entity_store_default_expiry_seconds: int = Field(
        default=31_536_000,
        alias="ENTITY_STORE_DEFAULT_EXPIRY_SECONDS",
    )

    # Chain RPC and rental contract
    chain_backend: Literal["web3", "memory"] = Field(default="memory", alias="CHAIN_BACKEND")
    chain_rpc_url: str = Field(
        default="https://mendoza.hoodi.arkiv.network/rpc",
        alias="CHAIN_RPC_URL",
    )
    chain_rpc_timeout_seconds: float = Field(default=20.0, alias="CHAIN_RPC_TIMEOUT_SECONDS")
    rental_contract_address: str = Field(
        default="0x7AdceCe47B501fD61326Cec01E5711a6B9AB334e",
        alias="RENTAL_CONTRACT_ADDRESS",
    )

    # Catalog and segmenting
    default_price_eth: Decimal = Field(default=Decimal("0.0001"), alias="DEFAULT_PRICE_ETH")
    segment_max_bytes: int = Field(default=100_000, alias="SEGMENT_MAX_BYTES")
    segment_duration_seconds: float = Field(default=10.0, alias="SEGMENT_DURATION_SECONDS")
    segment_upload_concurrency: int = Field(default=4, alias="SEGMENT_UPLOAD_CONCURRENCY")

    # Absolute base used in generated manifests; request URL is used when unset
    public_base_url: str | None = Field(default=None, alias="PUBLIC_BASE_URL")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
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
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
