"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainsync.config.constants import (
    DEFAULT_CONFIRMATION_DEPTH,
    DEFAULT_RPC_URLS,
    LAUNCHPAD_FACTORY_ADDRESS,
    MAX_EXECUTION_SECONDS,
    PARALLEL_TOKEN_LIMIT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Blockchain RPC endpoints, in failover order (comma-separated)
    rpc_urls: str = ",".join(DEFAULT_RPC_URLS)
    rpc_request_timeout: int = Field(
        default=15, ge=1, description="HTTP timeout per RPC request in seconds"
    )

    # Launchpad
    factory_address: str = LAUNCHPAD_FACTORY_ADDRESS

    # Indexer
    confirmation_depth: int = Field(
        default=DEFAULT_CONFIRMATION_DEPTH,
        ge=0,
        description="Blocks held back from the chain tip before indexing",
    )
    max_execution_seconds: float = Field(
        default=MAX_EXECUTION_SECONDS,
        gt=0,
        description="Cooperative wall-clock budget of one indexer invocation",
    )
    parallel_token_limit: int = Field(
        default=PARALLEL_TOKEN_LIMIT,
        ge=1,
        description="Tokens whose swaps are scanned concurrently",
    )

    # Price-history seeding endpoint (optional, best-effort)
    history_seed_url: str | None = None
    history_seed_token: str | None = None

    # Redis (Dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("factory_address")
    @classmethod
    def normalize_factory_address(cls, value: str) -> str:
        """Store the factory address lowercase."""
        return value.strip().lower()

    @property
    def rpc_url_list(self) -> list[str]:
        """RPC endpoints in failover order."""
        return [url.strip() for url in self.rpc_urls.split(",") if url.strip()]


settings = Settings()
