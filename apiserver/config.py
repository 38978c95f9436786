"""Application configuration loaded from environment variables."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 5000
FALLBACK_PORT = 3000


class Settings(BaseSettings):
    """Central settings pulled from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # App
    app_env: str = "production"
    log_level: str = "INFO"

    # HTTP
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    fallback_port: int = FALLBACK_PORT

    # Business routes, as "module:function"
    route_registrar: str = "apiserver.routes:register_routes"

    # Request logging
    api_prefix: str = "/api"
    log_line_limit: int = 80

    # Request bodies
    max_body_bytes: int = 50 * 1024 * 1024
    """Upper bound for JSON and form bodies (50 MB, large photo payloads)."""

    # Assets
    static_dir: str = "dist/public"
    dev_asset_url: str = "http://localhost:5173"
    """Where the front-end dev pipeline serves assets in development."""

    # Supabase (consumed by the route registrar, only echoed here)
    supabase_url: str | None = None
    supabase_service_key: str | None = None

    @field_validator("port", mode="before")
    @classmethod
    def _coerce_port(cls, value: Any) -> int:
        """Unset, non-numeric or out-of-range ports fall back to the default."""
        try:
            port = int(str(value).strip())
        except (TypeError, ValueError):
            return DEFAULT_PORT
        if not 0 < port < 65536:
            return DEFAULT_PORT
        return port

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def describe_environment(config: Settings) -> dict[str, str]:
    """Report which externally consumed variables are set, without their values."""
    watched = {
        "SUPABASE_URL": config.supabase_url,
        "SUPABASE_SERVICE_KEY": config.supabase_service_key,
    }
    return {name: "✓ defined" if value else "✗ missing" for name, value in watched.items()}


settings = Settings()
