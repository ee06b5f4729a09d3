import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator, ConfigDict
from functools import lru_cache

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: "development" or "production"
    environment: str = "development"

    # Empty = no durable backend (file settings store, no cooldown tracking)
    database_url: str = ""

    @model_validator(mode="before")
    @classmethod
    def _fix_database_url_for_asyncpg(cls, values: dict) -> dict:
        """Hosted Postgres gives postgresql:// — we need postgresql+asyncpg:// for asyncpg."""
        if not isinstance(values, dict):
            return values
        url = values.get("database_url") or ""
        if url.startswith("postgresql://") and "+asyncpg" not in url:
            values["database_url"] = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return values

    # Verifies session tokens issued by the login flow
    jwt_secret: str = ""
    encryption_key: str = ""
    auth_cookie_name: str = "auth"

    # LinkedIn Marketing API
    linkedin_api_base: str = "https://api.linkedin.com/rest"
    linkedin_api_version: str = "202504"
    linkedin_access_token: str = ""  # Single-tenant mode only

    request_timeout_seconds: float = 15.0
    analytics_timeout_seconds: float = 10.0
    campaign_page_size: int = 500
    campaign_max_pages: int = 50
    lookup_batch_size: int = 10

    cooldown_hours: int = 48

    selected_accounts_file: str = "selected-accounts.json"
    default_tenant_id: str = "default"

    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Enforce that session and encryption secrets are set when running multi-tenant in production."""
        if self.is_production and self.database_configured:
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production when DATABASE_URL is configured. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
            if not self.encryption_key:
                raise ValueError(
                    "ENCRYPTION_KEY must be set in production. "
                    "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
                )
            if "localhost" in self.database_url:
                logger.warning("DATABASE_URL appears to point at localhost in production.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def multi_tenant(self) -> bool:
        return self.database_configured and bool(self.jwt_secret)

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["http://localhost:5173", "http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
