"""
regdesk.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the API, the identity provider
  emulation and the admin client.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for entrypoints.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Strict env-driven configuration (prefix `REGDESK_`) with defaults safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="REGDESK_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "regdesk"
    log_level: str = "INFO"
    # JSON lines for log shippers; set false for human-readable console output.
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Identity provider tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "regdesk-identity"
    jwt_audience: str = "authenticated"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    access_token_ttl_minutes: int = Field(default=60, ge=1)
    refresh_token_ttl_days: int = Field(default=30, ge=1)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./regdesk.db"
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Synthetic identity emails for admins: "<username>@<admin_email_domain>".
    admin_email_domain: str = "regdesk.admin"

    # Admin client (Session/Role Provider)
    backend_base_url: str = "http://localhost:8080"
    request_timeout_seconds: float = 10.0
    auth_timeout_seconds: float = 30.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each entrypoint.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The API reads settings from `app.state.settings` (see `api.deps.settings_dep`) so tests
# can build apps with isolated settings without touching the cached instance.
