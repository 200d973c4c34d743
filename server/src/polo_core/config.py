"""Configuration and environment loading for Polo Core."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str
    supabase_service_role_key: str
    supabase_anon_key: str

    # Custody secrets
    encryption_secret: str  # 64 hex chars (32 bytes)
    sponsor_secret_key: str

    # Stellar
    stellar_network: Literal["testnet", "mainnet", "public"] = "testnet"
    horizon_url: str | None = None  # Overrides the network default

    # Email (Resend)
    resend_api_key: str | None = None
    email_from: str = "Polo Auth <noreply@aleregex.com>"

    # Server
    app_env: str = "production"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    allowed_origins: str = "http://localhost:3000"

    # Tenant-scoped endpoints fall back to the "default" tenant when enabled
    allow_default_tenant: bool = False

    # OTP
    otp_ttl_minutes: int = 10

    # Payment history paging
    history_default_limit: int = 10
    history_max_limit: int = 50

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in ("development", "dev", "local")

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
