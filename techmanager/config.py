"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

PLACEHOLDER_BACKEND_URL = "YOUR_SUPABASE_URL_HERE"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class BackendConfig(BaseSettings):
    mode: str = "auto"  # auto | rest | local
    url: str = ""
    anon_key: str = ""
    timeout: float = 10.0

    model_config = SettingsConfigDict(env_prefix="TECHMANAGER_BACKEND_")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key and self.url != PLACEHOLDER_BACKEND_URL)


class AuthConfig(BaseSettings):
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 30
    fallback_timer_seconds: float = 1.0
    min_password_length: int = 6

    model_config = SettingsConfigDict(env_prefix="TECHMANAGER_AUTH_")


class GeocodingConfig(BaseSettings):
    base_url: str = "https://nominatim.openstreetmap.org/search"
    language: str = "pt-BR"
    request_limit: int = 8
    max_results: int = 5
    min_query_length: int = 2
    default_lat: float = -14.235
    default_lng: float = -51.9253
    user_agent: str = "techmanager/0.3"
    timeout: float = 10.0

    model_config = SettingsConfigDict(env_prefix="TECHMANAGER_GEOCODING_")


class LocalBackendConfig(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///:memory:"
    seed_demo_users: bool = True
    demo_admin_email: str = "admin@example.com"
    demo_admin_password: str = "admin123"
    demo_admin_name: str = "Administrator"
    demo_technician_email: str = "tech@example.com"
    demo_technician_password: str = "tech123"
    demo_technician_name: str = "Sample Technician"

    model_config = SettingsConfigDict(env_prefix="TECHMANAGER_LOCAL_")


class UIConfig(BaseSettings):
    default_theme: str = "dark"  # light | dark


class Settings(BaseSettings):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    local: LocalBackendConfig = Field(default_factory=LocalBackendConfig)
    ui: UIConfig = Field(default_factory=UIConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    return Settings(
        backend=BackendConfig(**y.get("backend", {})),
        auth=AuthConfig(**y.get("auth", {})),
        geocoding=GeocodingConfig(**y.get("geocoding", {})),
        local=LocalBackendConfig(**y.get("local", {})),
        ui=UIConfig(**y.get("ui", {})),
    )
