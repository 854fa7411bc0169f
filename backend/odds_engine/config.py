from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import URL, make_url


class Settings(BaseSettings):
    app_name: str = "OddsEngine"
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/odds_engine"

    policy_cache_ttl_seconds: float = 30.0
    default_refresh_interval_minutes: int = 15

    sweep_max_concurrency: int = 8
    sweep_event_timeout_seconds: float = 30.0
    sweep_timeout_seconds: float = 300.0

    external_feed_base_url: str = ""
    external_feed_api_key: str = ""
    external_feed_horizon_hours: int = 24

    notification_webhook_url: str = ""

    history_retention_days: int = 30
    volume_retention_days: int = 7

    risk_concentration_pct: float = 70.0
    risk_anomalous_change_pct: float = 25.0
    risk_window_minutes: int = 30

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()


def get_database_url() -> str:
    return settings.database_url


def get_database_identity() -> tuple[str, str]:
    parsed: URL = make_url(get_database_url())
    return parsed.host or "<unknown>", parsed.database or "<unknown>"
