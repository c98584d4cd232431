from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Tempo Analytics API"
    app_env: str = "local"
    app_debug: bool = True
    api_port: int = 8000
    database_url: str = "postgresql+psycopg://tempo@postgres:5432/tempo"
    database_password: str | None = None
    jwt_secret: str = "replace-me"
    jwt_algorithm: str = "HS256"
    admin_role: str = "admin"
    analytics_default_window_days: int = 30
    analytics_realtime_window_days: int = 7
    analytics_max_window_days: int = 731
    analytics_fetch_workers: int = 8
    metrics_enabled: bool = False
    otel_enabled: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@dataclass(slots=True, frozen=True)
class AnalyticsConfig:
    """Options injected into the analytics orchestrator at construction."""

    endpoint: str
    credential: str | None = None
    default_window_days: int = 30
    realtime_window_days: int = 7
    max_window_days: int = 731
    fetch_workers: int = 8
    admin_role: str = "admin"

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalyticsConfig:
        return cls(
            endpoint=settings.database_url,
            credential=settings.database_password,
            default_window_days=max(1, settings.analytics_default_window_days),
            realtime_window_days=max(1, settings.analytics_realtime_window_days),
            max_window_days=max(
                settings.analytics_max_window_days,
                settings.analytics_default_window_days,
                settings.analytics_realtime_window_days,
            ),
            fetch_workers=max(1, settings.analytics_fetch_workers),
            admin_role=settings.admin_role,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
