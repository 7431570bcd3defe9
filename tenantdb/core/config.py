"""Client settings loaded from environment / .env file."""

from enum import StrEnum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Mode(StrEnum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    LOCAL = "local"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TENANTDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Tenant identity ───────────────────────────────────
    app_id: str = ""
    company_id: str = ""

    # ── Credentials ───────────────────────────────────────
    company_token: str = ""  # sent as a bearer token
    api_key: str = ""

    # ── Control plane ─────────────────────────────────────
    api_base_url: str = "https://metrics-hub-six.vercel.app"
    mode: Mode = Mode.PRODUCTION
    request_timeout_s: float = 30.0

    # ── Retries (idempotent provisioning calls only) ──────
    retry_max_attempts: int = 3
    retry_backoff_ms: int = 200

    debug: bool = False

    def endpoint_url(self, endpoint: str) -> str:
        base = self.api_base_url.rstrip("/")
        return f"{base}/api/proxy/sdk/{self.mode}/{endpoint.lstrip('/')}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
