"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_KEY = "demo-api-key-12345"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "docanchor"
    postgres_password: str = "docanchor_dev_password"
    postgres_host: str = "localhost"
    postgres_db: str = "docanchor"
    postgres_port: int = 5432

    # Redis (idempotency cache)
    redis_url: str = "redis://localhost:6379/0"
    idempotency_enabled: bool = True
    idempotency_ttl_seconds: int = 86400

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    environment: str = "development"
    secret_key: str = "dev-secret-key-change-in-production"
    api_keys: list[str] = [DEFAULT_API_KEY]

    # Logging
    log_level: str = "INFO"

    # Ledger
    ledger_provider: str = "memory"  # memory, web3
    ledger_network: str = "eduChain"  # eduChain, sepolia, mainnet
    ledger_rpc_url: Optional[str] = None  # Overrides the network's RPC URL
    ledger_chain_id: Optional[int] = None
    infura_key: Optional[str] = None
    contract_address: Optional[str] = None  # Overrides the deployment file
    contract_deployment_path: str = "./contract-deployment.json"
    ledger_private_key: Optional[str] = None  # Required for write-capable sessions
    ledger_rpc_timeout_seconds: float = 30
    ledger_confirmation_timeout_seconds: float = 120
    ledger_writes_required: bool = True

    # Deployment bootstrap
    contract_source_path: Optional[str] = None
    solc_version: str = "0.8.19"

    # Uploads
    max_upload_bytes: int = 5 * 1024 * 1024

    # Error responses
    expose_error_details: Optional[bool] = None  # Defaults to on outside production

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        if self.is_development or self.environment.lower() == "test":
            return "sqlite:///./docanchor.db"
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() in ("development", "dev")

    @property
    def show_error_details(self) -> bool:
        """Whether raw ledger messages go into the diagnostic ``error`` field."""
        if self.expose_error_details is not None:
            return self.expose_error_details
        return not self.is_production

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if DEFAULT_API_KEY in self.api_keys or not self.api_keys:
                raise ValueError(
                    "API_KEYS must be set in production. Do not use the demo API key."
                )
            if self.ledger_provider == "memory":
                raise ValueError(
                    "LEDGER_PROVIDER=memory is not allowed in production. "
                    "Use LEDGER_PROVIDER=web3."
                )
            if self.ledger_writes_required and not self.ledger_private_key:
                raise ValueError(
                    "LEDGER_PRIVATE_KEY is required for write-capable sessions. "
                    "Set LEDGER_WRITES_REQUIRED=false for a verification-only deployment."
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
